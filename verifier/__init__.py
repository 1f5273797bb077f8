"""Standalone verification tools."""

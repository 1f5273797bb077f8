"""Command line interface for GiftProof."""

from giftproof.cli.main import cli

__all__ = ["cli"]

"""
GiftProof Reveal Server

Serves the published commitment and each day's reveal once its schedule allows,
and verifies submitted reveals against the commitment.
"""

__version__ = "0.1.0"

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]

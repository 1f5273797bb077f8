"""
Pocket verifier for gift reveals.

Checks a published reveal against a commitment using public data only:
leaf recomputation, Merkle proof, and root equality.
Reveals and commitments may be local files or URLs.
"""
from __future__ import annotations

import argparse
import json
import sys
from typing import Any

import requests

from giftproof.core.crypto import is_hex_digest
from giftproof.core.models import Commitment
from giftproof.core.verifier import Verifier

EXIT_OK = 0
EXIT_UNUSABLE = 1
# First failing check decides the exit code.
EXIT_CODES = {"leaf": 2, "proof": 3, "root": 4}


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def load_document(source: str, timeout: float = 10.0) -> Any:
    if is_url(source):
        resp = requests.get(source, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    with open(source, "r", encoding="utf-8") as f:
        return json.load(f)


def load_commitment(source: str) -> Commitment:
    """A commitment file or URL, or a bare 64-character hex root."""
    if is_hex_digest(source.lower()):
        return Commitment(root=source.lower(), season="unknown")
    data = load_document(source)
    # The reveal server wraps the commitment with reveal progress.
    if isinstance(data, dict) and isinstance(data.get("commitment"), dict):
        data = data["commitment"]
    return Commitment.model_validate(data)


def report(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False))


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Verify a gift reveal against a published commitment")
    p.add_argument("--reveal", required=True, help="reveal JSON file or URL")
    p.add_argument("--commitment", required=True, help="commitment JSON file or URL, or the hex root")
    args = p.parse_args(argv)

    try:
        commitment = load_commitment(args.commitment)
        reveal = load_document(args.reveal)
    except (OSError, ValueError, requests.RequestException) as e:
        report({"ok": False, "stage": "input", "reason": str(e)})
        return EXIT_UNUSABLE
    if not isinstance(reveal, dict):
        report({"ok": False, "stage": "input", "reason": "reveal must be a JSON object"})
        return EXIT_UNUSABLE

    result = Verifier(commitment).verify_reveal(reveal)
    if result.valid:
        report({"ok": True, "day": reveal.get("day"), "root": commitment.root})
        return EXIT_OK

    stage = result.failed_checks[0] if result.failed_checks else "proof"
    report({"ok": False, "stage": stage, "failed_checks": result.failed_checks, "reason": result.details})
    return EXIT_CODES[stage]


if __name__ == "__main__":
    sys.exit(main())

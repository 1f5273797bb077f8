"""Loading and generating daily gift lists."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from giftproof.core.errors import BatchSizeMismatch, GiftListError
from giftproof.core.models import DEFAULT_BATCH_SIZE, GiftSpec

logger = logging.getLogger(__name__)


def parse_gift_list(data: Any, batch_size: int = DEFAULT_BATCH_SIZE) -> List[GiftSpec]:
    """
    Validate raw gift data and return it ordered by day.

    Args:
        data: Either ``{"gifts": [...]}`` or a bare list of gift objects.
        batch_size: Number of days in the season.

    Raises:
        GiftListError: If an entry is malformed or a day repeats.
        BatchSizeMismatch: If the list does not cover exactly days 1..batch_size.
    """
    if isinstance(data, dict):
        data = data.get("gifts")
    if not isinstance(data, list):
        raise GiftListError("Gift list must be a list or an object with a 'gifts' list")

    gifts = []
    for position, raw in enumerate(data):
        try:
            gifts.append(GiftSpec.model_validate(raw))
        except ValidationError as e:
            raise GiftListError(f"Invalid gift at position {position}: {e}") from e

    gifts.sort(key=lambda g: g.day)
    days = [g.day for g in gifts]
    if len(set(days)) != len(days):
        raise GiftListError(f"Duplicate gift days in list: {days}")
    if len(gifts) != batch_size:
        raise BatchSizeMismatch(f"Expected {batch_size} gifts, got {len(gifts)}")
    if days != list(range(1, batch_size + 1)):
        raise GiftListError(f"Gift days must cover 1..{batch_size}, got {days}")
    return gifts


def load_gift_list(path: Union[str, Path], batch_size: int = DEFAULT_BATCH_SIZE) -> List[GiftSpec]:
    """Load a gift list from a JSON file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise GiftListError(f"Invalid JSON in gift list {path}: {e}") from e
    gifts = parse_gift_list(data, batch_size)
    logger.info(f"Loaded {len(gifts)} gifts from {path}")
    return gifts


def generate_sample_gift_list(days: int = DEFAULT_BATCH_SIZE) -> List[Dict[str, Any]]:
    """Sample schedule varying the gift mechanism through the season."""
    gifts = []
    for day in range(1, days + 1):
        if day % 7 == 0:
            gift_type = 'full_donation_to_ngo'
            params = {'ngo_wallet': 'NGO_WALLET_ADDRESS', 'percent': 100}
        elif day % 5 == 0:
            gift_type = 'top_buyers_airdrop'
            params = {'top_n': 10, 'allocation_percent': 40}
        elif day % 3 == 0:
            gift_type = 'deterministic_random'
            params = {'winner_count': 20, 'allocation_percent': 40, 'min_balance': 1000}
        else:
            gift_type = 'proportional_holders'
            params = {'allocation_percent': 40, 'min_balance': 100}

        gifts.append({
            'day': day,
            'type': gift_type,
            'params': params,
            'distribution_source': 'treasury_daily_fees',
            'notes': f"Day {day} gift - {gift_type}",
        })
    return gifts

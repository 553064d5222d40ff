"""Locality-based grouping of deliveries into assignable zones."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from ...config import settings
from ...models.domain import Delivery
from .base import UNLABELED_ZONE, Zone, zone_sizes

logger = logging.getLogger(__name__)


def group_by_locality(deliveries: Iterable[Delivery]) -> list[Zone]:
    """Bucket deliveries by area label, keeping first-seen label order."""

    buckets: dict[str, list[Delivery]] = {}
    for delivery in deliveries:
        label = (delivery.area or "").strip() or UNLABELED_ZONE
        buckets.setdefault(label, []).append(delivery)
    return [Zone(label=label, deliveries=tuple(items)) for label, items in buckets.items()]


def _merge_step(zones: list[Zone], min_size: int) -> list[Zone] | None:
    """Merge one undersized zone into another, or return None if impossible."""

    undersized = [index for index, zone in enumerate(zones) if len(zone) < min_size]
    if not undersized:
        return None

    # Largest undersized zone; the later one wins a size tie.
    target = undersized[0]
    for index in undersized[1:]:
        if len(zones[index]) >= len(zones[target]):
            target = index

    donor = next((index for index in undersized if index != target), None)
    if donor is None:
        return None

    merged = list(zones)
    merged[target] = zones[target].merged_with(zones[donor])
    del merged[donor]
    return merged


def rebalance_zones(
    zones: Sequence[Zone],
    *,
    min_size: int | None = None,
    max_zones: int | None = None,
) -> list[Zone]:
    """Merge small zones pairwise while there are too many zones.

    Returns a new list; the input is left untouched. Each merge removes one
    zone, so the loop runs at most ``len(zones) - 1`` times. When no second
    undersized zone is left the loop stops, even above ``max_zones``.
    """

    min_size = settings.zone_min_size if min_size is None else min_size
    max_zones = settings.zone_max_count if max_zones is None else max_zones

    current = list(zones)
    for _ in range(max(0, len(current) - 1)):
        if len(current) <= max_zones:
            break
        merged = _merge_step(current, min_size)
        if merged is None:
            logger.info(
                f"Zone rebalancing stopped with {len(current)} zones (sizes {zone_sizes(current)}); "
                "no further merge possible"
            )
            break
        current = merged
    return current


def partition_deliveries(
    deliveries: Iterable[Delivery],
    *,
    min_size: int | None = None,
    max_zones: int | None = None,
) -> list[Zone]:
    zones = group_by_locality(deliveries)
    balanced = rebalance_zones(zones, min_size=min_size, max_zones=max_zones)
    if len(balanced) != len(zones):
        logger.info(f"Merged {len(zones)} locality zones into {len(balanced)}")
    return balanced

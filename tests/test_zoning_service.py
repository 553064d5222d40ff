from datetime import date
from decimal import Decimal
from typing import Optional

from src.dairy_delivery.models.domain import Delivery, Point
from src.dairy_delivery.services.zoning.base import UNLABELED_ZONE, Zone, zone_sizes
from src.dairy_delivery.services.zoning.service import (
    group_by_locality,
    partition_deliveries,
    rebalance_zones,
)


def _delivery(delivery_id: str, area: Optional[str]) -> Delivery:
    return Delivery(
        id=delivery_id,
        user_id=f"U-{delivery_id}",
        delivery_date=date(2024, 6, 3),
        status="scheduled",
        quantity=1,
        unit_price=Decimal("30.00"),
        total_price=Decimal("30.00"),
        area=area,
        location=Point(11.0, 76.9),
    )


def _zones(*sizes: int) -> list[Zone]:
    zones = []
    for index, size in enumerate(sizes):
        label = f"Z{index}"
        zones.append(Zone(label=label, deliveries=tuple(_delivery(f"{label}-{n}", label) for n in range(size))))
    return zones


def test_group_by_locality_keeps_first_seen_order_and_unlabeled_bucket():
    deliveries = [
        _delivery("1", "RS Puram"),
        _delivery("2", None),
        _delivery("3", "Gandhipuram"),
        _delivery("4", "RS Puram"),
        _delivery("5", "  "),
    ]

    zones = group_by_locality(deliveries)

    assert [zone.label for zone in zones] == ["RS Puram", UNLABELED_ZONE, "Gandhipuram"]
    assert zones[0].delivery_ids == ["1", "4"]
    assert zones[1].delivery_ids == ["2", "5"]


def test_rebalance_leaves_few_zones_alone():
    zones = _zones(1, 1, 2)

    assert rebalance_zones(zones, min_size=3, max_zones=5) == zones


def test_rebalance_merges_into_largest_undersized_zone_last_wins_tie():
    zones = _zones(1, 1, 1, 5, 5, 5)

    result = rebalance_zones(zones, min_size=3, max_zones=5)

    assert len(result) == 5
    assert sum(zone_sizes(result)) == 18
    # Z2 is the last of the tied undersized zones and absorbs Z0.
    assert [zone.label for zone in result] == ["Z1", "Z2+Z0", "Z3", "Z4", "Z5"]


def test_rebalance_repeats_until_zone_count_fits():
    zones = _zones(1, 1, 1, 1, 5, 5, 5)

    result = rebalance_zones(zones, min_size=3, max_zones=5)

    assert len(result) == 5
    assert zone_sizes(result) == [1, 3, 5, 5, 5]


def test_rebalance_stops_when_no_pair_of_small_zones_exists():
    zones = _zones(3, 4, 5, 6, 7, 8, 1)

    result = rebalance_zones(zones, min_size=3, max_zones=5)

    assert zone_sizes(result) == [3, 4, 5, 6, 7, 8, 1]


def test_rebalance_does_not_mutate_input():
    zones = _zones(1, 1, 1, 5, 5, 5)
    snapshot = list(zones)

    rebalance_zones(zones, min_size=3, max_zones=5)

    assert zones == snapshot


def test_partition_preserves_every_delivery_exactly_once():
    areas = ["A", "B", "C", "D", "E", "F", "G", "A", "B", "H"]
    deliveries = [_delivery(str(index), area) for index, area in enumerate(areas)]

    zones = partition_deliveries(deliveries, min_size=3, max_zones=5)

    ids = [delivery_id for zone in zones for delivery_id in zone.delivery_ids]
    assert sorted(ids) == sorted(d.id for d in deliveries)
    assert len(ids) == len(set(ids))

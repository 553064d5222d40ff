import math
from datetime import date
from decimal import Decimal

import pytest

from src.dairy_delivery.models.domain import Delivery, Point
from src.dairy_delivery.services.geospatial import distance
from src.dairy_delivery.services.routing.heuristic import build_tour, estimate_duration_minutes


def _delivery(delivery_id: str, lat: float, lon: float) -> Delivery:
    return Delivery(
        id=delivery_id,
        user_id=f"U-{delivery_id}",
        delivery_date=date(2024, 6, 3),
        status="scheduled",
        quantity=1,
        unit_price=Decimal("30.00"),
        total_price=Decimal("30.00"),
        location=Point(lat, lon),
    )


def test_build_tour_visits_nearest_first():
    depot = Point(0.0, 0.0)
    stops = [_delivery("far", 0.0, 0.05), _delivery("near", 0.0, 0.01), _delivery("mid", 0.0, 0.03)]

    tour = build_tour(stops, depot, minutes_per_km=3)

    assert [leg.delivery.id for leg in tour.legs] == ["near", "mid", "far"]
    assert [leg.sequence for leg in tour.legs] == [1, 2, 3]
    assert tour.total_distance_km == pytest.approx(distance(depot, Point(0.0, 0.05)))


def test_build_tour_breaks_ties_by_input_order():
    depot = Point(0.0, 0.0)
    stops = [
        _delivery("B", 0.01, 0.01),
        _delivery("C", 0.01, 0.0),
        _delivery("A", 0.0, 0.01),
    ]

    tour = build_tour(stops, depot, minutes_per_km=3)

    # A and C are equidistant from the depot; C comes first in the input.
    assert [leg.delivery.id for leg in tour.legs] == ["C", "B", "A"]


def test_build_tour_walks_square_perimeter_not_diagonal():
    corner = Point(0.0, 0.0)
    stops = [
        _delivery("D", 0.01, 0.01),
        _delivery("C", 0.01, 0.0),
        _delivery("B", 0.0, 0.01),
        _delivery("A", 0.0, 0.0),
    ]

    tour = build_tour(stops, corner, minutes_per_km=3)

    assert [leg.delivery.id for leg in tour.legs] == ["A", "C", "D", "B"]
    assert tour.legs[0].distance_from_prev_km == 0.0


def test_build_tour_leg_distances_sum_to_total():
    depot = Point(11.0168, 76.9558)
    stops = [
        _delivery("1", 11.02, 76.96),
        _delivery("2", 11.03, 76.95),
        _delivery("3", 11.01, 76.97),
        _delivery("4", 11.04, 76.98),
    ]

    tour = build_tour(stops, depot, minutes_per_km=3)

    assert sum(leg.distance_from_prev_km for leg in tour.legs) == pytest.approx(tour.total_distance_km)
    assert tour.estimated_duration_minutes == math.ceil(tour.total_distance_km * 3)
    assert sorted(d.id for d in tour.ordered_deliveries) == ["1", "2", "3", "4"]


def test_build_tour_empty():
    tour = build_tour([], Point(0.0, 0.0))

    assert tour.legs == []
    assert tour.total_distance_km == 0.0
    assert tour.estimated_duration_minutes == 0


def test_estimate_duration_rounds_up():
    assert estimate_duration_minutes(10.0, 3) == 30
    assert estimate_duration_minutes(10.01, 3) == 31

"""Unit tests for nearby upcoming events."""
from datetime import date

from eventgraph.proximity import find_upcoming_near_events

ORIGIN = (48.0, 7.85)
# one degree of latitude is about 111.19km
KM_PER_DEGREE = 111.195


def north_of_origin(km):
    return ORIGIN[0] + km / KM_PER_DEGREE, ORIGIN[1]


def test_candidates_keep_list_order_not_distance_order(make_event):
    event = make_event('X', date(2025, 3, 1), lat=ORIGIN[0], lon=ORIGIN[1])
    a = make_event('A', date(2025, 3, 8), lat=north_of_origin(3)[0], lon=ORIGIN[1])
    b = make_event('B', date(2025, 3, 15), lat=north_of_origin(1)[0], lon=ORIGIN[1])
    c = make_event('C', date(2025, 3, 22), lat=north_of_origin(6)[0], lon=ORIGIN[1])

    find_upcoming_near_events([event], [event, a, b, c], max_distance_km=5.0, count=2)

    assert event.upcoming_near == [a, b]


def test_far_cancelled_and_ungeocoded_candidates_are_skipped(make_event):
    event = make_event('X', date(2025, 3, 1), lat=ORIGIN[0], lon=ORIGIN[1])
    far = make_event('Weit', date(2025, 3, 2), lat=north_of_origin(6)[0], lon=ORIGIN[1])
    cancelled = make_event('Abgesagt', date(2025, 3, 3), lat=ORIGIN[0], lon=ORIGIN[1], cancelled=True)
    nowhere = make_event('Ohne Ort', date(2025, 3, 4))
    near = make_event('Nah', date(2025, 3, 5), lat=north_of_origin(2)[0], lon=ORIGIN[1])

    find_upcoming_near_events([event], [event, far, cancelled, nowhere, near])

    assert event.upcoming_near == [near]


def test_count_limits_result(make_event):
    event = make_event('X', date(2025, 3, 1), lat=ORIGIN[0], lon=ORIGIN[1])
    candidates = [
        make_event(str(i), date(2025, 3, 2 + i), lat=ORIGIN[0], lon=ORIGIN[1]) for i in range(5)
    ]

    find_upcoming_near_events([event], candidates)

    assert event.upcoming_near == candidates[:3]


def test_event_without_coordinates_is_left_alone(make_event):
    event = make_event('X', date(2025, 3, 1))
    candidate = make_event('A', date(2025, 3, 8), lat=ORIGIN[0], lon=ORIGIN[1])

    find_upcoming_near_events([event], [candidate])

    assert event.upcoming_near is None


def test_event_with_coordinates_and_no_neighbours_gets_empty_list(make_event):
    event = make_event('X', date(2025, 3, 1), lat=ORIGIN[0], lon=ORIGIN[1])

    find_upcoming_near_events([event], [event])

    assert event.upcoming_near == []

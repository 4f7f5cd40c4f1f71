import random
from datetime import date

from labscan.services.trends import DEFAULT_BASELINE, HISTORY_MONTHS, baseline_for, generate_historical_data


def test_six_points_ending_this_month():
    today = date(2024, 3, 31)
    points = generate_historical_data("Glucose", today=today, rng=random.Random(1))
    assert len(points) == HISTORY_MONTHS == 6
    assert [p.date for p in points] == [
        "2023-10-31",
        "2023-11-30",
        "2023-12-31",
        "2024-01-31",
        "2024-02-29",
        "2024-03-31",
    ]


def test_dates_strictly_increase_with_default_today():
    points = generate_historical_data("Hemoglobin")
    dates = [date.fromisoformat(p.date) for p in points]
    assert dates == sorted(dates)
    assert len(set(dates)) == 6
    today = date.today()
    assert (dates[-1].year, dates[-1].month) == (today.year, today.month)


def test_values_within_twenty_percent_and_rounded():
    base = baseline_for("Platelet Count")
    for seed in range(20):
        for p in generate_historical_data("Platelet Count", rng=random.Random(seed)):
            assert base * 0.8 - 0.01 <= p.value <= base * 1.2 + 0.01
            assert round(p.value, 2) == p.value


def test_unknown_parameter_uses_default_baseline():
    points = generate_historical_data("Unobtainium", rng=random.Random(3))
    assert len(points) == 6
    for p in points:
        assert DEFAULT_BASELINE * 0.8 - 0.01 <= p.value <= DEFAULT_BASELINE * 1.2 + 0.01


def test_seeded_generator_is_reproducible():
    today = date(2025, 1, 15)
    a = generate_historical_data("ALT", today=today, rng=random.Random(42))
    b = generate_historical_data("ALT", today=today, rng=random.Random(42))
    assert a == b
    assert a[0].date == "2024-08-15"

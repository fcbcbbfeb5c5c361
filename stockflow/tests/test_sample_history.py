from datetime import datetime, timezone

from stockflow.utils.sample_history import generate_sample_history, time_label


def test_sample_history_shape():
    now = datetime(2025, 3, 14, 20, 0, tzinfo=timezone.utc)

    points = generate_sample_history("1mo", "AAPL", now=now, seed=7)

    assert len(points) == 30
    assert points[-1]["timestamp"] == int(now.timestamp() * 1000)
    assert points[-1]["time"] == "Mar 14"
    assert all(p["low"] <= p["price"] <= p["high"] for p in points)
    assert generate_sample_history("1mo", "AAPL", now=now, seed=7) == points


def test_time_labels_use_market_time():
    moment = datetime(2025, 7, 1, 13, 30, tzinfo=timezone.utc)

    assert time_label(moment, "1d") == "9:30 AM"
    assert time_label(moment, "5d") == "Tue 7/1"
    assert time_label(moment, "5d", recent=True) == "Tue 7/1 9:30 AM"
    assert time_label(moment, "1y") == "Jul '25"
    assert time_label(moment, "5y") == "Jul 2025"

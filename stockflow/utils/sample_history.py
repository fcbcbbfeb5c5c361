"""
Sample price series for the historical chart fallback.

Produces a plausible random walk with OHLC and volume so the chart page still
renders when Yahoo Finance has no data. Values are illustrative only.
"""

import math
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

MARKET_TZ = ZoneInfo("America/New_York")

# Base prices for well-known symbols
BASE_PRICES = {
    "AAPL": 175,
    "GOOGL": 2800,
    "GOOG": 2800,
    "TSLA": 250,
    "MSFT": 415,
    "AMZN": 3400,
    "NVDA": 875,
}

# period -> (points, spacing, volatility)
PERIOD_SHAPES: Dict[str, Tuple[int, timedelta, float]] = {
    "1d": (78, timedelta(minutes=5), 1.2),
    "5d": (35, timedelta(hours=1), 3.0),
    "1mo": (30, timedelta(days=1), 8.0),
    "3mo": (13, timedelta(weeks=1), 12.0),
    "6mo": (27, timedelta(weeks=1), 15.0),
    "1y": (13, timedelta(days=30), 20.0),
    "2y": (25, timedelta(days=30), 22.0),
    "5y": (21, timedelta(days=91), 25.0),
    "10y": (41, timedelta(days=91), 25.0),
    "max": (41, timedelta(days=91), 25.0),
}
DEFAULT_SHAPE = (24, timedelta(hours=1), 2.0)


def time_label(moment: datetime, period: str, recent: bool = False) -> str:
    """Chart axis label in market time, coarser for longer periods."""
    local = moment.astimezone(MARKET_TZ)
    clock = f"{local.hour % 12 or 12}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"
    if period == "1d":
        return clock
    if period == "5d":
        day = f"{local.strftime('%a')} {local.month}/{local.day}"
        return f"{day} {clock}" if recent else day
    if period in ("1mo", "3mo", "6mo"):
        return f"{local.strftime('%b')} {local.day}"
    if period == "1y":
        return local.strftime("%b '%y")
    return local.strftime("%b %Y")


def generate_sample_history(period: str, symbol: str, now: Optional[datetime] = None, seed: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Generate a sample OHLCV series for a chart period.

    Args:
        period: Chart period ("1d", "5d", "1mo", ...)
        symbol: Ticker, used to pick a realistic base price
        now: End of the series (defaults to current time)
        seed: Random seed for reproducible series

    Returns:
        List of chart points ordered oldest first
    """
    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc)
    points, spacing, volatility = PERIOD_SHAPES.get(period, DEFAULT_SHAPE)
    price = BASE_PRICES.get(symbol.upper(), 150 + rng.random() * 100)
    base_volume = 500000 if period == "1d" else 1000000

    data = []
    for i in range(points):
        moment = now - spacing * (points - 1 - i)
        trend = math.sin(i * 0.1) * 0.1  # slow drift
        price = max(1.0, price + trend * volatility + (rng.random() - 0.5) * volatility)

        open_ = max(1.0, price + (rng.random() - 0.5) * volatility * 0.2)
        high = max(open_, price) + rng.random() * volatility * 0.4
        low = max(0.5, min(open_, price) - rng.random() * volatility * 0.4)

        data.append({
            "time": time_label(moment, period, recent=i >= points - 10),
            "date": moment.isoformat(),
            "price": round(price, 2),
            "open": round(open_, 2),
            "high": round(high, 2),
            "low": round(low, 2),
            "volume": int(base_volume * (rng.random() * 0.8 + 0.2)),
            "timestamp": int(moment.timestamp() * 1000),
        })
    return data

"""
Market data endpoints backed by Yahoo Finance.

Handlers are plain `def` so FastAPI runs the blocking yfinance calls in its
threadpool. Provider failures never surface as errors here: the client
functions return fallback payloads marked `fallback: true`.
"""

from typing import Optional

from fastapi import APIRouter, Query

from stockflow.clients import yfinance_client
from stockflow.config import InvalidRequest

router = APIRouter(prefix="/api/stocks", tags=["stocks"])


def _require_symbol(symbol: Optional[str]) -> str:
    if not symbol or not symbol.strip():
        raise InvalidRequest("Symbol parameter is required")
    return symbol.strip().upper()


@router.get("/quote")
def quote(symbol: Optional[str] = Query(None)):
    return yfinance_client.get_quote(_require_symbol(symbol))


@router.get("/statistics")
def statistics(symbol: Optional[str] = Query(None)):
    return yfinance_client.get_statistics(_require_symbol(symbol))


@router.get("/profile")
def profile(symbol: Optional[str] = Query(None)):
    return yfinance_client.get_profile(_require_symbol(symbol))


@router.get("/holders")
def holders(symbol: Optional[str] = Query(None)):
    return yfinance_client.get_holders(_require_symbol(symbol))


@router.get("/historical")
def historical(
    symbol: Optional[str] = Query(None),
    period: str = Query("1d"),
    interval: Optional[str] = Query(None),
):
    return yfinance_client.get_historical(_require_symbol(symbol), period=period, interval=interval)


@router.get("/search")
def search(q: str = Query("")):
    return yfinance_client.search_symbols(q)

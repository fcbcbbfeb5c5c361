from fastapi import APIRouter, Query

from stockflow.clients import yfinance_client

router = APIRouter(prefix="/api/news", tags=["news"])


@router.get("")
def news(category: str = Query("general")):
    """Market news for a category (general, stocks, crypto, earnings)."""
    return yfinance_client.get_news(category)

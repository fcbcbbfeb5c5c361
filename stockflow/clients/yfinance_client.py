"""
Yahoo Finance client for dashboard market data.

Provides functions to fetch quotes, statistics, company profiles, holders,
historical price series, symbol search and news using the yfinance library.
All fields are passed through from Yahoo Finance; nothing is computed here.

Key Features:
- Quote, statistics and profile field mapping from Ticker.info
- Institutional / mutual fund holders, insider transactions, ownership breakdown
- Historical series with an interval fallback chain and market-time labels
- Symbol search (crypto filtered out) and category news
- Every function degrades to a hard-coded fallback payload marked
  `fallback: True` instead of raising

Dependencies:
- yfinance: Yahoo Finance API wrapper
- pandas: DataFrames returned by yfinance
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import yfinance as yf

from stockflow.utils.fallback_data import (
    FALLBACK_HOLDERS,
    FALLBACK_PROFILE,
    FALLBACK_QUOTE,
    FALLBACK_STATISTICS,
    fallback_news,
    fallback_search,
    with_fallback_flag,
)
from stockflow.utils.sample_history import generate_sample_history, time_label

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 10
MAX_NEWS_ITEMS = 20


class MarketDataUnavailable(LookupError):
    pass


def _clean(value: Any) -> Any:
    """NaN / NaT → None so payloads stay JSON-safe."""
    try:
        if value is not None and not isinstance(value, (list, dict, str)) and pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if hasattr(value, "item"):
        return value.item()  # numpy scalar
    return value


def _info(symbol: str) -> Dict[str, Any]:
    info = yf.Ticker(symbol).info or {}
    if not info.get("symbol") and not info.get("regularMarketPrice") and not info.get("currentPrice"):
        raise MarketDataUnavailable(f"No data found for symbol: {symbol}")
    return info


def _records(frame: Optional[pd.DataFrame]) -> List[Dict[str, Any]]:
    if frame is None or not isinstance(frame, pd.DataFrame) or frame.empty:
        return []
    return [{k: _clean(v) for k, v in row.items()} for row in frame.to_dict("records")]


def _pct(value: Any) -> float:
    value = _clean(value)
    return float(value) * 100 if value is not None else 0.0


# ---------- QUOTE ----------
def get_quote(symbol: str) -> Dict[str, Any]:
    """
    Fetch a real-time quote for a stock.

    Args:
        symbol: Stock ticker symbol (e.g., "AAPL", "TSLA")

    Returns:
        Dict with price, change, volume, ranges and exchange info.
        Returns the fallback quote (with `fallback: True`) if retrieval fails.

    Example:
        data = get_quote("AAPL")
        # Returns: {"symbol": "AAPL", "price": 150.25, "changePercent": 1.45, ...}
    """
    try:
        info = _info(symbol)
        return {
            "symbol": info.get("symbol") or symbol.upper(),
            "name": info.get("longName") or info.get("shortName") or symbol,
            "price": info.get("regularMarketPrice") or info.get("currentPrice") or 0,
            "change": info.get("regularMarketChange") or 0,
            "changePercent": info.get("regularMarketChangePercent") or 0,
            "volume": info.get("regularMarketVolume") or 0,
            "marketCap": info.get("marketCap") or 0,
            "dayLow": info.get("regularMarketDayLow") or info.get("dayLow") or 0,
            "dayHigh": info.get("regularMarketDayHigh") or info.get("dayHigh") or 0,
            "fiftyTwoWeekLow": info.get("fiftyTwoWeekLow") or 0,
            "fiftyTwoWeekHigh": info.get("fiftyTwoWeekHigh") or 0,
            "currency": info.get("currency") or "USD",
            "exchange": info.get("fullExchangeName") or info.get("exchange") or "",
            "lastUpdated": pd.Timestamp.now(tz="UTC").isoformat(),
        }
    except Exception as e:
        logger.warning(f"Quote lookup failed for {symbol}, serving fallback: {e}")
        return with_fallback_flag(FALLBACK_QUOTE, requestedSymbol=symbol)


# ---------- STATISTICS ----------
def get_statistics(symbol: str) -> Dict[str, Any]:
    """
    Fetch key statistics for a stock.

    Returns valuation and trading statistics (P/E, EPS, beta, book value,
    52-week range, averages). Falls back to a sample dataset on failure.
    """
    try:
        info = _info(symbol)
        return {
            "symbol": info.get("symbol") or symbol.upper(),
            "name": info.get("shortName") or info.get("longName") or symbol,
            "price": info.get("regularMarketPrice") or info.get("currentPrice") or 0,
            "change": info.get("regularMarketChange") or 0,
            "changePercent": info.get("regularMarketChangePercent") or 0,
            "volume": info.get("regularMarketVolume") or 0,
            "averageVolume": info.get("averageVolume"),
            "marketCap": info.get("marketCap"),
            "peRatio": info.get("trailingPE"),              # Price-to-earnings ratio
            "eps": info.get("trailingEps"),                 # Earnings per share
            "dividendYield": info.get("dividendYield"),
            "high52Week": info.get("fiftyTwoWeekHigh"),
            "low52Week": info.get("fiftyTwoWeekLow"),
            "beta": info.get("beta"),
            "bookValue": info.get("bookValue"),
            "priceToBook": info.get("priceToBook"),
            "previousClose": info.get("regularMarketPreviousClose") or info.get("previousClose"),
            "open": info.get("regularMarketOpen") or info.get("open"),
            "dayHigh": info.get("regularMarketDayHigh") or info.get("dayHigh"),
            "dayLow": info.get("regularMarketDayLow") or info.get("dayLow"),
        }
    except Exception as e:
        logger.warning(f"Statistics lookup failed for {symbol}, serving fallback: {e}")
        return with_fallback_flag(FALLBACK_STATISTICS, requestedSymbol=symbol)


# ---------- PROFILE ----------
# response key -> Ticker.info key
PROFILE_FIELDS = {
    # Basic Information
    "longName": "longName",
    "sector": "sector",
    "industry": "industry",
    "fullTimeEmployees": "fullTimeEmployees",
    # Location Details
    "city": "city",
    "state": "state",
    "country": "country",
    "address1": "address1",
    "zip": "zip",
    "phone": "phone",
    "website": "website",
    # Business Information
    "businessSummary": "longBusinessSummary",
    "governanceEpochDate": "governanceEpochDate",
    "compensationAsOfEpochDate": "compensationAsOfEpochDate",
    # Financial Metrics
    "marketCap": "marketCap",
    "price": "regularMarketPrice",
    "change": "regularMarketChange",
    "changePercent": "regularMarketChangePercent",
    "previousClose": "previousClose",
    "open": "open",
    "dayLow": "regularMarketDayLow",
    "dayHigh": "regularMarketDayHigh",
    "volume": "regularMarketVolume",
    "averageVolume": "averageDailyVolume3Month",
    # Valuation Metrics
    "beta": "beta",
    "peRatio": "trailingPE",
    "forwardPE": "forwardPE",
    "pegRatio": "pegRatio",
    "priceToBook": "priceToBook",
    "enterpriseValue": "enterpriseValue",
    "enterpriseToRevenue": "enterpriseToRevenue",
    "enterpriseToEbitda": "enterpriseToEbitda",
    # Dividend Information
    "dividendYield": "dividendYield",
    "dividendRate": "dividendRate",
    "exDividendDate": "exDividendDate",
    "payoutRatio": "payoutRatio",
    # Price Ranges
    "high52Week": "fiftyTwoWeekHigh",
    "low52Week": "fiftyTwoWeekLow",
    "fiftyDayAverage": "fiftyDayAverage",
    "twoHundredDayAverage": "twoHundredDayAverage",
    # Financial Health
    "totalCash": "totalCash",
    "totalCashPerShare": "totalCashPerShare",
    "totalDebt": "totalDebt",
    "debtToEquity": "debtToEquity",
    "revenuePerShare": "revenuePerShare",
    "returnOnAssets": "returnOnAssets",
    "returnOnEquity": "returnOnEquity",
    "grossProfits": "grossProfits",
    "freeCashflow": "freeCashflow",
    "operatingCashflow": "operatingCashflow",
    # Revenue and Growth
    "totalRevenue": "totalRevenue",
    "revenueGrowth": "revenueGrowth",
    "earningsGrowth": "earningsGrowth",
    "earningsQuarterlyGrowth": "earningsQuarterlyGrowth",
    # Profitability
    "profitMargins": "profitMargins",
    "grossMargins": "grossMargins",
    "operatingMargins": "operatingMargins",
    "ebitdaMargins": "ebitdaMargins",
    # Share Information
    "sharesOutstanding": "sharesOutstanding",
    "floatShares": "floatShares",
    "sharesShort": "sharesShort",
    "sharesShortPriorMonth": "sharesShortPriorMonth",
    "shortRatio": "shortRatio",
    "shortPercentOfFloat": "shortPercentOfFloat",
    # Exchange Information
    "exchangeTimezoneName": "exchangeTimezoneName",
    "exchangeTimezoneShortName": "exchangeTimezoneShortName",
    "currency": "currency",
    "quoteType": "quoteType",
    # Analyst Recommendations
    "recommendationMean": "recommendationMean",
    "recommendationKey": "recommendationKey",
    "numberOfAnalystOpinions": "numberOfAnalystOpinions",
    "targetHighPrice": "targetHighPrice",
    "targetLowPrice": "targetLowPrice",
    "targetMeanPrice": "targetMeanPrice",
    "targetMedianPrice": "targetMedianPrice",
    # ESG
    "esgPopulated": "esgPopulated",
    # Additional Fields
    "bookValue": "bookValue",
    "priceHint": "priceHint",
    "regularMarketTime": "regularMarketTime",
    "postMarketChangePercent": "postMarketChangePercent",
    "postMarketChange": "postMarketChange",
    "postMarketTime": "postMarketTime",
    "postMarketPrice": "postMarketPrice",
}


def get_profile(symbol: str) -> Dict[str, Any]:
    """
    Fetch the company profile: business summary, location, valuation,
    financial health, share structure and analyst targets.

    Returns:
        Dict of profile fields (missing fields are None).
        Returns the fallback profile (with `fallback: True`) if retrieval fails.
    """
    try:
        info = _info(symbol)
        profile = {
            "symbol": info.get("symbol") or symbol.upper(),
            "name": info.get("shortName") or info.get("longName") or symbol,
            "exchange": info.get("fullExchangeName") or info.get("exchange"),
        }
        profile.update({key: info.get(source) for key, source in PROFILE_FIELDS.items()})
        return profile
    except Exception as e:
        logger.warning(f"Profile lookup failed for {symbol}, serving fallback: {e}")
        return with_fallback_flag(FALLBACK_PROFILE, requestedSymbol=symbol)


# ---------- HOLDERS ----------
def _holder_rows(frame: Optional[pd.DataFrame]) -> List[Dict[str, Any]]:
    return [
        {
            "organization": row.get("Holder") or row.get("Organization"),
            "pctHeld": _pct(row.get("pctHeld") or row.get("% Out")),
            "position": row.get("Shares"),
            "value": row.get("Value"),
        }
        for row in _records(frame)
    ]


def _ownership_breakdown(frame: Optional[pd.DataFrame]) -> Optional[Dict[str, float]]:
    if frame is None or not isinstance(frame, pd.DataFrame) or frame.empty or "Value" not in frame.columns:
        return None
    values = frame["Value"].to_dict()
    return {
        "institutionalPercent": _pct(values.get("institutionsPercentHeld")),
        "insiderPercent": _pct(values.get("insidersPercentHeld")),
        "floatPercent": _pct(values.get("institutionsFloatPercentHeld")),
    }


def get_holders(symbol: str) -> Dict[str, Any]:
    """
    Fetch shareholder data for a stock.

    Returns:
        Dict containing:
        - institutionalHolders / mutualFundHolders / majorDirectHolders:
          [{organization, pctHeld (percent), position, value}]
        - insiderTransactions: [{insider, relation, transactionType, shares, value, date}]
        - ownershipBreakdown: {institutionalPercent, insiderPercent, floatPercent}

        Returns the fallback holders dataset if Yahoo has no holder data.
    """
    try:
        ticker = yf.Ticker(symbol)
        institutional = _holder_rows(ticker.institutional_holders)
        mutual_funds = _holder_rows(ticker.mutualfund_holders)
        insiders = [
            {
                "insider": row.get("Insider"),
                "relation": row.get("Position"),
                "transactionType": row.get("Transaction") or row.get("Text"),
                "shares": row.get("Shares"),
                "value": row.get("Value"),
                "date": row.get("Start Date"),
            }
            for row in _records(ticker.insider_transactions)
        ]
        breakdown = _ownership_breakdown(ticker.major_holders)

        if not institutional and not mutual_funds and not insiders and breakdown is None:
            raise MarketDataUnavailable(f"Holders data not available for {symbol}")

        return {
            "institutionalHolders": institutional,
            "mutualFundHolders": mutual_funds,
            "majorDirectHolders": [],  # not published by Yahoo's holders endpoints
            "insiderTransactions": insiders,
            "ownershipBreakdown": breakdown or {"institutionalPercent": 0, "insiderPercent": 0, "floatPercent": 0},
        }
    except Exception as e:
        logger.warning(f"Holders lookup failed for {symbol}, serving fallback: {e}")
        return with_fallback_flag(FALLBACK_HOLDERS, requestedSymbol=symbol)


# ---------- HISTORICAL ----------
# period -> (yfinance period, interval) attempts, in order
HISTORY_ATTEMPTS: Dict[str, List[Tuple[str, str]]] = {
    "1d": [("1d", "5m"), ("1d", "1m"), ("5d", "1d")],
    "5d": [("5d", "30m"), ("5d", "1d")],
    "1mo": [("1mo", "1d")],
    "3mo": [("3mo", "1d")],
    "6mo": [("6mo", "1d")],
    "1y": [("1y", "1d")],
    "2y": [("2y", "1wk")],
    "5y": [("5y", "1wk")],
    "10y": [("10y", "1mo")],
    "max": [("max", "1mo")],
}
# intraday periods keep only the most recent points
HISTORY_TAIL = {"1d": 100, "5d": 50}


def _format_history(frame: pd.DataFrame, period: str) -> List[Dict[str, Any]]:
    frame = frame.dropna(subset=["Open", "High", "Low", "Close"])
    tail = HISTORY_TAIL.get(period)
    if tail:
        frame = frame.tail(tail)

    points = []
    total = len(frame)
    for index, (ts, row) in enumerate(frame.iterrows()):
        moment = pd.Timestamp(ts)
        if moment.tzinfo is None:
            moment = moment.tz_localize("UTC")
        moment = moment.to_pydatetime()
        ohlc = {
            "open": round(float(row["Open"]), 2),
            "high": round(float(row["High"]), 2),
            "low": round(float(row["Low"]), 2),
            "close": round(float(row["Close"]), 2),
        }
        points.append({
            "time": time_label(moment, period, recent=index >= total - 10),
            "date": moment.isoformat(),
            "price": ohlc["close"],
            "open": ohlc["open"],
            "high": ohlc["high"],
            "low": ohlc["low"],
            "volume": int(_clean(row.get("Volume")) or 0),
            "timestamp": int(moment.timestamp() * 1000),
            "ohlc": ohlc,
        })
    return points


def get_historical(symbol: str, period: str = "1d", interval: Optional[str] = None) -> Dict[str, Any]:
    """
    Fetch a historical price series for charting.

    Tries the requested interval first (if any), then the period's default
    interval chain. If every attempt errors or returns nothing, a sample
    series is generated instead.

    Args:
        symbol: Stock ticker symbol
        period: Chart period ("1d", "5d", "1mo", "3mo", "6mo", "1y", "2y", "5y", "10y", "max")
        interval: Optional yfinance interval override (e.g., "5m", "1d")

    Returns:
        {"data": [chart points], "symbol", "period"}; `fallback: True` when sampled
    """
    attempts = list(HISTORY_ATTEMPTS.get(period, HISTORY_ATTEMPTS["1d"]))
    if interval:
        attempts.insert(0, (attempts[0][0], interval))

    for yf_period, yf_interval in attempts:
        try:
            frame = yf.Ticker(symbol).history(period=yf_period, interval=yf_interval)
        except Exception as e:
            logger.warning(f"History {symbol} {yf_period}/{yf_interval} failed: {e}")
            continue
        if frame is None or frame.empty:
            logger.info(f"History {symbol} {yf_period}/{yf_interval} returned no rows")
            continue

        try:
            points = _format_history(frame, period)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"History {symbol} {yf_period}/{yf_interval} had unexpected shape: {e}")
            continue
        if points:
            return {"symbol": symbol.upper(), "period": period, "data": points}

    logger.warning(f"All history lookups failed for {symbol} ({period}), using sample data")
    return {
        "symbol": symbol.upper(),
        "period": period,
        "data": generate_sample_history(period, symbol),
        "fallback": True,
    }


# ---------- SEARCH ----------
def search_symbols(query: str) -> Dict[str, Any]:
    """
    Search for stocks by symbol or company name.

    Cryptocurrencies are filtered out and at most 10 results are returned.
    On provider failure, matching popular stocks are returned instead.
    """
    if not query or not query.strip():
        return {"results": []}

    try:
        quotes = yf.Search(query, max_results=MAX_SEARCH_RESULTS, news_count=0).quotes or []
        results = [
            {
                "symbol": q.get("symbol"),
                "name": q.get("longname") or q.get("shortname") or q.get("symbol"),
                "exchange": q.get("exchDisp") or q.get("exchange") or "",
                "type": q.get("typeDisp") or "Stock",
                "sector": q.get("sector") or "",
                "industry": q.get("industry") or "",
            }
            for q in quotes
            if q.get("symbol") and q.get("typeDisp") != "Cryptocurrency"
        ]
        return {"results": results[:MAX_SEARCH_RESULTS]}
    except Exception as e:
        logger.warning(f"Symbol search failed for '{query}', serving fallback: {e}")
        return {"results": fallback_search(query), "fallback": True}


# ---------- NEWS ----------
# category -> [(search term, news count)]
NEWS_QUERIES = {
    "general": [(s, 3) for s in ("AAPL", "TSLA", "GOOGL", "MSFT", "NVDA", "SPY")],
    "stocks": [("stock market", 20)],
    "crypto": [("BTC-USD", 10), ("ETH-USD", 10)],
    "earnings": [("earnings", 20)],
}


def _normalize_news(item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    # newer yfinance nests the story under "content"
    content = item.get("content") if isinstance(item.get("content"), dict) else item
    title = content.get("title")
    url = content.get("link") or (content.get("canonicalUrl") or {}).get("url") or (content.get("clickThroughUrl") or {}).get("url")
    if not title or not url:
        return None

    publisher = content.get("publisher") or (content.get("provider") or {}).get("displayName") or "Yahoo Finance"
    publish_time = content.get("providerPublishTime")
    if publish_time is None and content.get("pubDate"):
        publish_time = int(pd.Timestamp(content["pubDate"]).timestamp())

    return {
        "title": title,
        "summary": content.get("summary") or title,
        "url": url,
        "type": content.get("type") or content.get("contentType") or "STORY",
        "uuid": item.get("uuid") or item.get("id") or uuid.uuid4().hex,
        "publisher": publisher,
        "providerPublishTime": publish_time or int(pd.Timestamp.now(tz="UTC").timestamp()),
        "thumbnail": content.get("thumbnail"),
        "relatedTickers": item.get("relatedTickers") or [],
    }


def get_news(category: str = "general") -> Dict[str, Any]:
    """
    Fetch recent market news for a category.

    Args:
        category: "general", "stocks", "crypto" or "earnings"

    Returns:
        {"success": True, "news": [...], "count": n}; mock headlines with
        `fallback: True` when Yahoo returns nothing
    """
    queries = NEWS_QUERIES.get(category, NEWS_QUERIES["general"])

    collected: List[Dict[str, Any]] = []
    for term, count in queries:
        try:
            collected.extend(yf.Search(term, max_results=0, news_count=count).news or [])
        except Exception as e:
            logger.info(f"News lookup failed for '{term}': {e}")

    seen = set()
    news = []
    for raw in collected:
        if not isinstance(raw, dict):
            continue
        try:
            item = _normalize_news(raw)
        except Exception as e:
            logger.info(f"Skipping malformed news item: {e}")
            continue
        if item and item["url"] not in seen:
            seen.add(item["url"])
            news.append(item)
    news = news[:MAX_NEWS_ITEMS]

    if news:
        return {"success": True, "news": news, "count": len(news)}

    logger.warning(f"No news found for category '{category}', serving fallback headlines")
    mock = fallback_news()
    return {"success": True, "news": mock, "count": len(mock), "fallback": True}

"""
Fallback market datasets.

Served whenever Yahoo Finance errors or returns nothing, so dashboard pages
always have something to render. Every payload built from here carries
`fallback: True`.
"""

import copy
import time
from typing import Any, Dict, List

FALLBACK_QUOTE: Dict[str, Any] = {
    "symbol": "AAPL",
    "name": "Apple Inc.",
    "price": 150.25,
    "change": 2.15,
    "changePercent": 1.45,
    "volume": 45000000,
    "marketCap": 2500000000000,
    "dayLow": 148.95,
    "dayHigh": 151.20,
    "fiftyTwoWeekLow": 124.17,
    "fiftyTwoWeekHigh": 180.95,
    "currency": "USD",
    "exchange": "NASDAQ Global Select",
}

FALLBACK_STATISTICS: Dict[str, Any] = {
    "symbol": "AAPL",
    "name": "Apple Inc.",
    "price": 150.25,
    "change": 2.15,
    "changePercent": 1.45,
    "volume": 45000000,
    "averageVolume": 50000000,
    "marketCap": 2500000000000,
    "peRatio": 25.5,
    "eps": 6.05,
    "dividendYield": 0.0055,
    "high52Week": 180.95,
    "low52Week": 124.17,
    "beta": 1.25,
    "bookValue": 4.15,
    "priceToBook": 36.2,
    "previousClose": 148.10,
    "open": 149.85,
    "dayHigh": 151.20,
    "dayLow": 148.95,
}

FALLBACK_PROFILE: Dict[str, Any] = {
    "symbol": "AAPL",
    "name": "Apple Inc.",
    "sector": "Technology",
    "industry": "Consumer Electronics",
    "fullTimeEmployees": 164000,
    "city": "Cupertino",
    "state": "CA",
    "country": "United States",
    "website": "https://www.apple.com",
    "businessSummary": (
        "Apple Inc. designs, manufactures, and markets smartphones, personal computers, tablets, "
        "wearables, and accessories worldwide. It also sells various related services. In addition, "
        "the company offers iPhone, a line of smartphones; Mac, a line of personal computers; iPad, "
        "a line of multi-purpose tablets; AirPods, a wireless headphone that deliver industry-leading "
        "audio experiences; and Apple Watch, a smartwatch that tracks daily activity and health."
    ),
    "marketCap": 2500000000000,
    "price": 150.25,
    "change": 2.15,
    "changePercent": 1.45,
    "exchange": "NASDAQ Global Select",
    "currency": "USD",
    "beta": 1.25,
    "peRatio": 25.5,
    "dividendYield": 0.0055,
    "high52Week": 180.95,
    "low52Week": 124.17,
}

FALLBACK_HOLDERS: Dict[str, Any] = {
    "institutionalHolders": [
        {"organization": "Vanguard Group Inc", "pctHeld": 7.85, "position": 1264000000, "value": 189600000000},
        {"organization": "BlackRock Inc.", "pctHeld": 6.22, "position": 1002000000, "value": 150300000000},
        {"organization": "Berkshire Hathaway Inc", "pctHeld": 5.57, "position": 896000000, "value": 134400000000},
        {"organization": "State Street Corp", "pctHeld": 3.85, "position": 620000000, "value": 93000000000},
        {"organization": "FMR LLC", "pctHeld": 2.31, "position": 372000000, "value": 55800000000},
    ],
    "mutualFundHolders": [
        {"organization": "Vanguard 500 Index Fund", "pctHeld": 3.12, "position": 502000000, "value": 75300000000},
        {"organization": "Vanguard Total Stock Mkt Index Fund", "pctHeld": 2.45, "position": 394000000, "value": 59100000000},
        {"organization": "SPDR S&P 500 ETF Trust", "pctHeld": 1.98, "position": 318000000, "value": 47700000000},
        {"organization": "Fidelity 500 Index Fund", "pctHeld": 1.76, "position": 283000000, "value": 42450000000},
        {"organization": "iShares Core S&P 500 ETF", "pctHeld": 1.54, "position": 248000000, "value": 37200000000},
    ],
    "majorDirectHolders": [
        {"organization": "Timothy D. Cook", "pctHeld": 0.02, "position": 3200000, "value": 480000000},
        {"organization": "Arthur D. Levinson", "pctHeld": 0.003, "position": 45000, "value": 6750000},
    ],
    "insiderTransactions": [
        {"insider": "Timothy D. Cook", "relation": "Chief Executive Officer", "transactionType": "Sale",
         "shares": 223000, "value": 33450000, "date": "2024-10-01"},
        {"insider": "Luca Maestri", "relation": "Senior Vice President, CFO", "transactionType": "Sale",
         "shares": 95000, "value": 14250000, "date": "2024-09-28"},
        {"insider": "Katherine L. Adams", "relation": "Senior Vice President, General Counsel", "transactionType": "Sale",
         "shares": 25000, "value": 3750000, "date": "2024-09-25"},
    ],
    "ownershipBreakdown": {
        "institutionalPercent": 59.7,
        "insiderPercent": 0.07,
        "floatPercent": 99.9,
    },
}

POPULAR_STOCKS: List[Dict[str, str]] = [
    {"symbol": "AAPL", "name": "Apple Inc.", "exchange": "NASDAQ", "type": "Equity", "sector": "Technology", "industry": "Consumer Electronics"},
    {"symbol": "GOOGL", "name": "Alphabet Inc.", "exchange": "NASDAQ", "type": "Equity", "sector": "Communication Services", "industry": "Internet Content & Information"},
    {"symbol": "MSFT", "name": "Microsoft Corporation", "exchange": "NASDAQ", "type": "Equity", "sector": "Technology", "industry": "Software - Infrastructure"},
    {"symbol": "AMZN", "name": "Amazon.com Inc.", "exchange": "NASDAQ", "type": "Equity", "sector": "Consumer Cyclical", "industry": "Internet Retail"},
    {"symbol": "TSLA", "name": "Tesla Inc.", "exchange": "NASDAQ", "type": "Equity", "sector": "Consumer Cyclical", "industry": "Auto Manufacturers"},
    {"symbol": "META", "name": "Meta Platforms Inc.", "exchange": "NASDAQ", "type": "Equity", "sector": "Communication Services", "industry": "Internet Content & Information"},
    {"symbol": "NVDA", "name": "NVIDIA Corporation", "exchange": "NASDAQ", "type": "Equity", "sector": "Technology", "industry": "Semiconductors"},
    {"symbol": "NFLX", "name": "Netflix Inc.", "exchange": "NASDAQ", "type": "Equity", "sector": "Communication Services", "industry": "Entertainment"},
]

_NEWS_TEMPLATES = [
    ("Stock Markets Rally as Tech Giants Report Strong Earnings",
     "Major technology companies exceeded expectations in their latest quarterly reports, driving market indices "
     "to new highs amid continued investor optimism about AI and cloud computing growth.",
     "stock-markets-rally-tech-giants-report-strong-earnings", "Yahoo Finance", 1800,
     ["AAPL", "MSFT", "GOOGL", "NVDA"], "1f2937", "Market+Rally"),
    ("Federal Reserve Signals Potential Rate Cuts Amid Cooling Inflation",
     "Fed officials indicate they may consider lowering interest rates in upcoming meetings as inflation data "
     "shows sustained progress toward the central bank's 2% target.",
     "federal-reserve-signals-potential-rate-cuts-cooling-inflation", "Reuters", 3600,
     ["TLT", "DXY", "SPY"], "374151", "Federal+Reserve"),
    ("Electric Vehicle Sector Surges on New Government Incentives",
     "EV stocks climb higher following announcement of expanded federal tax credits and infrastructure "
     "investments, boosting investor confidence in the clean energy transition.",
     "electric-vehicle-sector-surges-government-incentives", "MarketWatch", 5400,
     ["TSLA", "RIVN", "LCID", "NIO"], "059669", "Electric+Vehicles"),
    ("Cryptocurrency Market Rebounds Following Regulatory Clarity",
     "Bitcoin and major altcoins post significant gains after regulatory agencies provide clearer guidelines "
     "for digital asset operations and institutional adoption.",
     "cryptocurrency-market-rebounds-regulatory-clarity", "CoinDesk", 7200,
     ["BTC-USD", "ETH-USD"], "f59e0b", "Cryptocurrency"),
    ("Banking Sector Shows Resilience Despite Economic Headwinds",
     "Major financial institutions report stable loan portfolios and healthy capital ratios, demonstrating "
     "sector strength amid ongoing economic uncertainty.",
     "banking-sector-resilience-economic-headwinds", "Financial Times", 9000,
     ["JPM", "BAC", "WFC", "C"], "1e40af", "Banking+Sector"),
]


def with_fallback_flag(payload: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
    """Deep copy of a dataset marked as fallback."""
    return {**copy.deepcopy(payload), **extra, "fallback": True}


def fallback_news() -> List[Dict[str, Any]]:
    """Mock headlines timestamped relative to now."""
    now = int(time.time())
    items = []
    for i, (title, summary, slug, publisher, age, tickers, color, label) in enumerate(_NEWS_TEMPLATES, 1):
        items.append({
            "title": title,
            "summary": summary,
            "url": f"https://finance.yahoo.com/news/{slug}",
            "type": "STORY",
            "uuid": f"mock-{now}-{i}",
            "publisher": publisher,
            "providerPublishTime": now - age,
            "relatedTickers": tickers,
            "thumbnail": {
                "resolutions": [
                    {"url": f"https://via.placeholder.com/400x200/{color}/ffffff?text={label}", "width": 400, "height": 200}
                ]
            },
        })
    return items


def fallback_search(query: str) -> List[Dict[str, str]]:
    """Popular stocks whose symbol or name contains the query."""
    q = query.strip().lower()
    return [dict(s) for s in POPULAR_STOCKS if q in s["symbol"].lower() or q in s["name"].lower()]

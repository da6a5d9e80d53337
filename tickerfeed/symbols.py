"""
Ticker extraction from post text.

Handles:
- Cashtags: $TSLA, $AAPL, $005930.KS        → STOCK
- Korean listing codes: 005930, 035720.KQ   → STOCK (exchange defaults to KS)
- Bare uppercase words: BTC, ETH            → CRYPTO when known

A bare 2-5 letter word that is not a known coin (e.g. "AMD" without a $)
keeps ``kind=None``: it could be a stock or a coin and nothing in the text
says which. Ranking compares tickers only, so the gap does not affect it.
"""
import re
from typing import Optional

from pydantic import BaseModel

from tickerfeed.ranking.candidates import SymbolKind

CRYPTO_SYMBOLS = {
    'BTC', 'ETH', 'USDT', 'BNB', 'XRP', 'USDC', 'STETH', 'ADA', 'DOGE', 'SOL',
    'TRX', 'AVAX', 'DOT', 'MATIC', 'SHIB', 'LTC', 'BCH', 'LINK', 'ATOM', 'ETC',
    'XMR', 'ICP', 'NEAR', 'UNI', 'APT', 'QNT', 'FIL', 'VET', 'HBAR', 'ALGO',
    'MANA', 'SAND', 'AXS', 'FLOW', 'XTZ', 'EGLD', 'THETA', 'KLAY', 'AAVE', 'MKR',
}

# Exchange codes show up as bare words ("listed on NASDAQ") but are not tickers
KNOWN_EXCHANGES = {
    'NYSE', 'NASDAQ', 'NYS', 'NAS', 'LSE', 'TSE', 'HKG',
    'KS', 'KQ', 'KN',   # Korea
    'SS', 'SZ',         # China
}

COMMON_WORDS = {
    'THE', 'AND', 'FOR', 'ARE', 'BUT', 'NOT', 'YOU', 'ALL', 'CAN', 'HAD',
    'HER', 'WAS', 'ONE', 'OUR', 'OUT', 'DAY', 'GET', 'HAS', 'HIM', 'HIS',
    'HOW', 'ITS', 'NEW', 'NOW', 'OLD', 'SEE', 'TWO', 'WHO', 'BOY', 'DID',
    'MAY', 'PUT', 'SAY', 'SHE', 'TOO', 'USE',
    'CEO', 'CFO', 'CTO', 'CMO', 'IPO', 'API', 'URL', 'GPS', 'DVD', 'USB',
    'RAM', 'CPU', 'GPU', 'SSD', 'HDD', 'LCD', 'LED', 'PDF', 'FAQ', 'LOL',
    'OMG', 'TBH', 'IMO', 'FYI', 'ETA', 'EOD', 'COD', 'VIP',
}

CASHTAG_PATTERN = re.compile(r'\$([A-Z0-9]{1,6}(?:\.[A-Z]{1,3})?)')
KOREAN_CODE_PATTERN = re.compile(r'\b(\d{6})(?:\.([A-Z]{2}))?\b')
BARE_WORD_PATTERN = re.compile(r'\b([A-Z]{2,5})\b')
EXCHANGE_SUFFIX_PATTERN = re.compile(r'^(.+)\.([A-Z]{1,3})$')
VALID_TICKER_PATTERN = re.compile(r'^[A-Z0-9]{1,6}$')


class ExtractedSymbol(BaseModel):
    raw: str                           # as written: "$TSLA", "BTC"
    ticker: str                        # normalised: "TSLA", "BTC"
    kind: Optional[SymbolKind] = None
    exchange: Optional[str] = None


def normalize_ticker(ticker: str) -> str:
    return ticker.strip().upper()


def _split_exchange(value: str) -> tuple[str, Optional[str]]:
    match = EXCHANGE_SUFFIX_PATTERN.match(value)
    if match:
        return normalize_ticker(match.group(1)), match.group(2).upper()
    return normalize_ticker(value), None


def classify(ticker: str, exchange: Optional[str] = None, has_prefix: bool = False) -> Optional[SymbolKind]:
    if has_prefix or exchange:
        return SymbolKind.STOCK
    if ticker in CRYPTO_SYMBOLS:
        return SymbolKind.CRYPTO
    if re.fullmatch(r'\d{6}', ticker):
        return SymbolKind.STOCK
    return None


def _cashtags(text: str) -> list[ExtractedSymbol]:
    found = []
    for match in CASHTAG_PATTERN.finditer(text):
        ticker, exchange = _split_exchange(match.group(1))
        found.append(ExtractedSymbol(
            raw=match.group(0),
            ticker=ticker,
            exchange=exchange,
            kind=classify(ticker, exchange, has_prefix=True),
        ))
    return found


def _korean_codes(text: str) -> list[ExtractedSymbol]:
    return [
        ExtractedSymbol(
            raw=match.group(0),
            ticker=match.group(1),
            exchange=(match.group(2) or 'KS').upper(),
            kind=SymbolKind.STOCK,
        )
        for match in KOREAN_CODE_PATTERN.finditer(text)
    ]


def _bare_words(text: str, skip: set[str]) -> list[ExtractedSymbol]:
    found = []
    for match in BARE_WORD_PATTERN.finditer(text):
        ticker = normalize_ticker(match.group(1))
        if ticker in skip or ticker in KNOWN_EXCHANGES or ticker in COMMON_WORDS:
            continue
        found.append(ExtractedSymbol(raw=match.group(0), ticker=ticker, kind=classify(ticker)))
    return found


def extract_symbols(text: Optional[str]) -> list[ExtractedSymbol]:
    """
    Extract all financial symbols from text, in order of discovery.

    >>> [s.ticker for s in extract_symbols("Buying $TSLA and BTC, watching 005930.KS")]
    ['TSLA', '005930', 'BTC']
    """
    if not text or not isinstance(text, str):
        return []

    stocks = _cashtags(text) + _korean_codes(text)
    seen_tickers = {s.ticker for s in stocks}
    candidates = stocks + _bare_words(text, seen_tickers)

    seen: set[tuple[str, Optional[str]]] = set()
    result = []
    for symbol in candidates:
        key = (symbol.ticker, symbol.exchange)
        if key not in seen:
            seen.add(key)
            result.append(symbol)
    return result


def is_valid_ticker(ticker: Optional[str]) -> bool:
    if not ticker or not isinstance(ticker, str):
        return False
    return bool(VALID_TICKER_PATTERN.match(normalize_ticker(ticker)))

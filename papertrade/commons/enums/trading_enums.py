from enum import Enum


class TradingDeed(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class QuoteType(str, Enum):
    EQUITY = "equity"
    INDEX = "index"

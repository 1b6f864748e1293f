from .base import Base, BaseModel, MONEY
from .account_balance_model import AccountBalanceModel
from .account_transaction_model import AccountTransactionModel
from .bank_account_model import BankAccountModel, BankAccountTransactionModel
from .iso_data_model import IsoDataModel
from .portfolio_model import PortfolioModel
from .trading_transaction_model import TradingTransactionModel


__all__ = [
    "Base",
    "BaseModel",
    "MONEY",
    "AccountBalanceModel",
    "AccountTransactionModel",
    "BankAccountModel",
    "BankAccountTransactionModel",
    "IsoDataModel",
    "PortfolioModel",
    "TradingTransactionModel",
]

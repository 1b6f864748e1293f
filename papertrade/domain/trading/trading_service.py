import logging
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.commons.enums.trading_enums import TradingDeed
from papertrade.commons.locks import KeyedLocks
from papertrade.commons.money import DEFAULT_AMOUNT_LIMIT, format_amount
from papertrade.commons.results import (
    AbortTransaction,
    Conflict,
    DependencyFailure,
    Failure,
    NotFound,
    Ok,
    OperationResult,
    Rejected,
)
from papertrade.domain.trading.dtos.transaction_dto import (
    CostEstimate,
    TradeReceipt,
    TradingTransactionDTO,
)
from papertrade.domain.trading.positions import net_outstanding
from papertrade.domain.trading.pricing import estimate_cost
from papertrade.domain.trading.sell_policy import AllowAllSellPolicy, SellPolicy
from papertrade.infrastructure.database.client import PostgresClient
from papertrade.infrastructure.database.repositories.account_balance_repository import (
    AccountBalanceRepository,
)
from papertrade.infrastructure.database.repositories.account_transaction_repository import (
    AccountTransactionRepository,
)
from papertrade.infrastructure.database.repositories.bank_account_repository import (
    BankAccountRepository,
)
from papertrade.infrastructure.database.repositories.iso_data_repository import IsoDataRepository
from papertrade.infrastructure.database.repositories.trading_transaction_repository import (
    TradingTransactionRepository,
)
from papertrade.infrastructure.quotes.quote_base import QuoteDTO, QuoteProvider, QuoteProviderError

logger = logging.getLogger(__name__)


class TradingService:
    """
    Order executor.

    An order is quoted, validated and committed in one go: the balance row,
    the audit lines and the ledger entry are written in a single database
    transaction, or nothing is written at all.
    """

    def __init__(
        self,
        db_client: PostgresClient,
        quote_provider: QuoteProvider,
        locks: KeyedLocks,
        sell_policy: Optional[SellPolicy] = None,
        amount_limit: Decimal = DEFAULT_AMOUNT_LIMIT,
    ):
        self.db_client = db_client
        self.quote_provider = quote_provider
        self.locks = locks
        self.sell_policy = sell_policy or AllowAllSellPolicy()
        self.amount_limit = amount_limit

    # ------------------ PREVIEW ------------------

    async def preview_cost(
        self,
        trader_id: str,
        symbol: str,
        deed: TradingDeed,
        quantity: int,
    ) -> OperationResult[CostEstimate]:
        """
        Estimated cost of an order at the current quote. Nothing is stored and
        execution re-quotes anyway.
        """
        invalid = self._validate_order(symbol, quantity)
        if invalid:
            return invalid

        quote = await self._resolve_quote(symbol)
        if not isinstance(quote, QuoteDTO):
            return quote

        estimate = estimate_cost(deed, quote.price, quantity)
        logger.info(
            f"Estimated {deed.value} {quantity} {quote.symbol} for {trader_id}: "
            f"{quote.currency} {format_amount(estimate.total_cost)}"
        )
        return Ok(estimate)

    # ------------------ HISTORY ------------------

    async def transactions(
        self,
        trader_id: str,
        currency: Optional[str] = None,
        unlinked: bool = False,
    ) -> List[TradingTransactionDTO]:
        """
        The trader's ledger in active currencies, oldest first. With
        `unlinked`, only transactions that no portfolio holds yet.
        """
        currency = (currency or "").strip().upper() or None
        async with self.db_client.get_session() as session:
            active = await IsoDataRepository(session).active_currencies()
            txns = await TradingTransactionRepository(session).list_for_trader(
                trader_id, currency, unlinked=unlinked
            )

        return [t for t in txns if t.currency in active]

    # ------------------ BUY ------------------

    async def buy(self, trader_id: str, symbol: str, quantity: int) -> OperationResult[TradeReceipt]:
        invalid = self._validate_order(symbol, quantity)
        if invalid:
            return invalid

        quote = await self._resolve_quote(symbol)
        if not isinstance(quote, QuoteDTO):
            return quote

        try:
            async with self.locks.hold((trader_id, quote.currency)):
                async with self.db_client.transaction() as session:
                    receipt = await self._execute_buy(session, trader_id, quote, quantity)
        except AbortTransaction as e:
            logger.warning(f"Buy of {quantity} {quote.symbol} refused for {trader_id}: {e.result.reason}")
            return e.result

        logger.info(f"✅ {receipt.description} (transaction {receipt.transaction_id})")
        return Ok(receipt)

    async def _execute_buy(
        self,
        session: AsyncSession,
        trader_id: str,
        quote: QuoteDTO,
        quantity: int,
    ) -> TradeReceipt:
        currency = quote.currency
        await self._ensure_currency_active(session, currency)

        balances = AccountBalanceRepository(session)
        balance = await balances.get_for_update(trader_id, currency)
        if balance is None:
            raise AbortTransaction(NotFound(f"No account balance for currency {currency}"))

        estimate = estimate_cost(TradingDeed.BUY, quote.price, quantity)
        total_cost = estimate.total_cost

        if balance.non_trading_amount < total_cost:
            raise AbortTransaction(Conflict(f"Insufficient funds for currency {currency}"))

        await balances.update_amounts(
            trader_id,
            currency,
            trading_amount=balance.trading_amount + total_cost,
            non_trading_amount=balance.non_trading_amount - total_cost,
        )

        description = "Bought " + self._describe(quantity, quote, total_cost)
        await AccountTransactionRepository(session).add(trader_id, currency, description)

        txn = await TradingTransactionRepository(session).add(
            TradingTransactionDTO(
                trader_id=trader_id,
                symbol=quote.symbol,
                symbol_name=quote.name,
                deed=TradingDeed.BUY,
                quantity=quantity,
                currency=currency,
                price=quote.price,
                cost=total_cost,
            )
        )

        return TradeReceipt(
            transaction_id=txn.id,
            deed=TradingDeed.BUY,
            symbol=quote.symbol,
            quantity=quantity,
            currency=currency,
            unit_price=quote.price,
            total_cost=total_cost,
            description=description,
        )

    # ------------------ SELL ------------------

    async def sell(
        self,
        trader_id: str,
        symbol: str,
        quantity: int,
        auto_transfer_to_bank: bool = False,
        bank_account_id: Optional[int] = None,
    ) -> OperationResult[TradeReceipt]:
        invalid = self._validate_order(symbol, quantity)
        if invalid:
            return invalid

        # 0 is what clients send when no bank account is picked
        if auto_transfer_to_bank and not bank_account_id:
            return Rejected("Bank account is required for an automatic transfer")

        quote = await self._resolve_quote(symbol)
        if not isinstance(quote, QuoteDTO):
            return quote

        try:
            async with self.locks.hold((trader_id, quote.currency)):
                async with self.db_client.transaction() as session:
                    receipt = await self._execute_sell(
                        session,
                        trader_id,
                        quote,
                        quantity,
                        bank_account_id if auto_transfer_to_bank else None,
                    )
        except AbortTransaction as e:
            logger.warning(f"Sell of {quantity} {quote.symbol} refused for {trader_id}: {e.result.reason}")
            return e.result

        logger.info(f"✅ {receipt.description} (transaction {receipt.transaction_id})")
        return Ok(receipt)

    async def _execute_sell(
        self,
        session: AsyncSession,
        trader_id: str,
        quote: QuoteDTO,
        quantity: int,
        bank_account_id: Optional[int],
    ) -> TradeReceipt:
        currency = quote.currency
        await self._ensure_currency_active(session, currency)

        balances = AccountBalanceRepository(session)
        balance = await balances.get_for_update(trader_id, currency)
        if balance is None:
            raise AbortTransaction(NotFound(f"No account balance for currency {currency}"))

        ledger = TradingTransactionRepository(session)
        history = await ledger.list_for_symbol(trader_id, quote.symbol)

        refusal = self.sell_policy.refusal_reason(trader_id, quote, history)
        if refusal:
            raise AbortTransaction(Conflict(refusal))

        outstanding = net_outstanding(history)
        if quantity > outstanding:
            raise AbortTransaction(
                Conflict(
                    f"Insufficient holdings of {quote.symbol}: "
                    f"{outstanding} outstanding, {quantity} requested"
                )
            )

        bank_account = None
        if bank_account_id:
            bank_account = await BankAccountRepository(session).get(bank_account_id, for_update=True)
            if bank_account is None or bank_account.trader_id != trader_id:
                raise AbortTransaction(NotFound(f"Bank account {bank_account_id} not found"))
            if not bank_account.in_use:
                raise AbortTransaction(Conflict(f"Bank account {bank_account_id} is not in use"))
            if bank_account.currency != currency:
                raise AbortTransaction(
                    Conflict(f"Bank account {bank_account_id} is not in currency {currency}")
                )

        estimate = estimate_cost(TradingDeed.SELL, quote.price, quantity)
        proceeds = estimate.total_cost

        non_trading_amount = balance.non_trading_amount
        if bank_account is None:
            non_trading_amount += proceeds
        if non_trading_amount >= self.amount_limit:
            raise AbortTransaction(
                Conflict(f"Balance for currency {currency} would exceed the allowed limit")
            )
        trading_amount = max(Decimal("0"), balance.trading_amount - proceeds)

        audit = AccountTransactionRepository(session)
        description = "Sold " + self._describe(quantity, quote, proceeds)
        await audit.add(trader_id, currency, description)

        txn = await ledger.add(
            TradingTransactionDTO(
                trader_id=trader_id,
                symbol=quote.symbol,
                symbol_name=quote.name,
                deed=TradingDeed.SELL,
                quantity=quantity,
                currency=currency,
                price=quote.price,
                cost=proceeds,
            )
        )

        if bank_account is not None:
            transfer = (
                f"Transferred {currency} {format_amount(proceeds)} to bank "
                f"{bank_account.bank_name} with account number {bank_account.bank_account_number} "
                f"for currency {bank_account.currency}"
            )
            await audit.add(trader_id, currency, transfer)
            await BankAccountRepository(session).add_transaction(bank_account, transfer)
            logger.info(f"💸 {transfer}")

        await balances.update_amounts(
            trader_id,
            currency,
            trading_amount=trading_amount,
            non_trading_amount=non_trading_amount,
        )

        return TradeReceipt(
            transaction_id=txn.id,
            deed=TradingDeed.SELL,
            symbol=quote.symbol,
            quantity=quantity,
            currency=currency,
            unit_price=quote.price,
            total_cost=proceeds,
            transferred_to_bank_account_id=bank_account.id if bank_account else None,
            description=description,
        )

    # ------------------ HELPERS ------------------

    @staticmethod
    def _validate_order(symbol: str, quantity: int) -> Optional[Rejected]:
        if not symbol or not symbol.strip():
            return Rejected("Symbol is required")
        if quantity is None or quantity <= 0:
            return Rejected("Quantity must be greater than zero")
        return None

    async def _resolve_quote(self, symbol: str) -> Union[QuoteDTO, Failure]:
        symbol = symbol.strip()
        try:
            quote = await self.quote_provider.get_quote(symbol)
        except QuoteProviderError as e:
            logger.error(f"❌ No quote for {symbol}: {e}")
            return DependencyFailure(f"No quote available for {symbol}")

        if quote is None:
            return NotFound(f"Symbol {symbol} not found")
        if quote.is_index:
            return NotFound(f"{quote.symbol} is an index rather than an equity")
        return quote

    @staticmethod
    async def _ensure_currency_active(session: AsyncSession, currency: str) -> None:
        if not await IsoDataRepository(session).is_currency_active(currency):
            raise AbortTransaction(NotFound(f"Currency {currency} is not active"))

    @staticmethod
    def _describe(quantity: int, quote: QuoteDTO, total: Decimal) -> str:
        return (
            f"{quantity} shares of {quote.symbol} at {quote.currency} {quote.price}, "
            f"total cost {quote.currency} {format_amount(total)}"
        )

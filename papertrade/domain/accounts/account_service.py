import logging
from decimal import Decimal
from typing import List, Optional

from papertrade.commons.locks import KeyedLocks
from papertrade.commons.money import DEFAULT_AMOUNT_LIMIT, format_amount
from papertrade.commons.results import (
    AbortTransaction,
    Conflict,
    NoChange,
    NotFound,
    Ok,
    OperationResult,
    Rejected,
)
from papertrade.domain.accounts.dtos.account_dto import AccountBalanceDTO, BankAccountDTO
from papertrade.domain.trading.fees import to_decimal
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

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(
        self,
        db_client: PostgresClient,
        locks: KeyedLocks,
        amount_limit: Decimal = DEFAULT_AMOUNT_LIMIT,
    ):
        self.db_client = db_client
        self.locks = locks
        self.amount_limit = amount_limit

    async def deposit(
        self,
        trader_id: str,
        currency: str,
        amount,
    ) -> OperationResult[AccountBalanceDTO]:
        """
        Add funds to the non-trading amount of a currency, opening the
        balance on the first deposit.
        """
        currency = (currency or "").strip().upper()
        amount = to_decimal(amount)
        if amount <= 0 or amount >= self.amount_limit:
            return Rejected(f"Deposit must be greater than 0 and less than {self.amount_limit:,}")
        if len(currency) != 3:
            return Rejected("Currency must be a 3-letter ISO code")

        try:
            async with self.locks.hold((trader_id, currency)):
                async with self.db_client.transaction() as session:
                    iso = IsoDataRepository(session)
                    if not await iso.is_currency_active(currency):
                        raise AbortTransaction(NotFound(f"Currency {currency} is not active"))

                    balances = AccountBalanceRepository(session)
                    balance = await balances.get_for_update(trader_id, currency)
                    if balance is None:
                        balance = await balances.create(trader_id, currency, amount)
                    else:
                        non_trading_amount = balance.non_trading_amount + amount
                        if non_trading_amount >= self.amount_limit:
                            raise AbortTransaction(
                                Conflict(f"Balance for currency {currency} would exceed the allowed limit")
                            )
                        balance = await balances.update_amounts(
                            trader_id,
                            currency,
                            trading_amount=balance.trading_amount,
                            non_trading_amount=non_trading_amount,
                        )

                    await AccountTransactionRepository(session).add(
                        trader_id, currency, f"Deposited {currency} {format_amount(amount)}"
                    )
                    balance.decimal_places_to_display = await iso.minor_units(currency)
        except AbortTransaction as e:
            logger.warning(f"Deposit of {currency} {amount} refused for {trader_id}: {e.result.reason}")
            return e.result

        logger.info(f"💰 Deposited {currency} {format_amount(amount)} for {trader_id}")
        return Ok(balance)

    async def balances(
        self,
        trader_id: str,
        currency: Optional[str] = None,
    ) -> List[AccountBalanceDTO]:
        """Balances in active currencies, tagged with their display precision."""
        async with self.db_client.get_session() as session:
            iso = IsoDataRepository(session)
            active = await iso.active_currencies()
            balances = await AccountBalanceRepository(session).list_for_trader(trader_id)

            result = []
            for balance in balances:
                if balance.currency not in active:
                    continue
                if currency and balance.currency != currency.upper():
                    continue
                balance.decimal_places_to_display = await iso.minor_units(balance.currency)
                result.append(balance)

        return result

    async def register_bank_account(
        self,
        trader_id: str,
        currency: str,
        bank_name: str,
        bank_account_number: str,
    ) -> OperationResult[BankAccountDTO]:
        currency = (currency or "").strip().upper()
        if not bank_name or not bank_account_number:
            return Rejected("Bank name and account number are required")

        try:
            async with self.db_client.transaction() as session:
                if not await IsoDataRepository(session).is_currency_active(currency):
                    raise AbortTransaction(NotFound(f"Currency {currency} is not active"))
                account = await BankAccountRepository(session).create(
                    trader_id, currency, bank_name.strip(), bank_account_number.strip()
                )
        except AbortTransaction as e:
            return e.result

        logger.info(f"🏦 Bank account {account.id} registered for {trader_id} in {currency}")
        return Ok(account)

    async def retire_bank_account(
        self,
        trader_id: str,
        bank_account_id: int,
    ) -> OperationResult[BankAccountDTO]:
        """Mark a bank account not in use; sale proceeds can no longer go there."""
        try:
            async with self.db_client.transaction() as session:
                banks = BankAccountRepository(session)
                account = await banks.get(bank_account_id, for_update=True)
                if account is None:
                    raise AbortTransaction(NotFound(f"Bank account {bank_account_id} not found"))
                if account.trader_id != trader_id:
                    raise AbortTransaction(
                        Conflict(f"Bank account {bank_account_id} does not belong to {trader_id}")
                    )
                if not account.in_use:
                    return NoChange(account)

                account = await banks.mark_not_in_use(bank_account_id)
                await banks.add_transaction(
                    account,
                    f"Marked not in use for bank {account.bank_name} with account number "
                    f"{account.bank_account_number} for currency {account.currency}",
                )
        except AbortTransaction as e:
            return e.result

        logger.info(f"🏦 Bank account {bank_account_id} marked not in use for {trader_id}")
        return Ok(account)

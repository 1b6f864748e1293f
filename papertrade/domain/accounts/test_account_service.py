from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from papertrade.commons.locks import KeyedLocks
from papertrade.commons.results import Conflict, NoChange, NotFound, Ok, Rejected
from papertrade.domain.accounts.account_service import AccountService
from papertrade.domain.accounts.dtos.account_dto import AccountBalanceDTO, BankAccountDTO

MODULE = "papertrade.domain.accounts.account_service"
TRADER = "trader-1"


def balance(non_trading: str, currency: str = "USD") -> AccountBalanceDTO:
    return AccountBalanceDTO(
        trader_id=TRADER,
        currency=currency,
        trading_amount=Decimal("0"),
        non_trading_amount=Decimal(non_trading),
    )


@pytest.fixture
def mock_db_client():
    """Mock del cliente de base de datos."""
    client = MagicMock()
    session = AsyncMock()
    client.get_session.return_value.__aenter__.return_value = session
    client.get_session.return_value.__aexit__.return_value = None
    client.transaction.return_value.__aenter__.return_value = session
    client.transaction.return_value.__aexit__.return_value = None
    return client


@pytest.fixture
def repos():
    """Repositorios parcheados dentro del módulo del servicio."""
    with patch(f"{MODULE}.AccountBalanceRepository") as balance_cls, \
            patch(f"{MODULE}.AccountTransactionRepository") as audit_cls, \
            patch(f"{MODULE}.BankAccountRepository") as bank_cls, \
            patch(f"{MODULE}.IsoDataRepository") as iso_cls:

        balances = balance_cls.return_value
        balances.get_for_update = AsyncMock(return_value=None)
        balances.list_for_trader = AsyncMock(return_value=[])
        balances.create = AsyncMock(
            side_effect=lambda trader_id, currency, amount: balance(str(amount), currency)
        )
        balances.update_amounts = AsyncMock(
            side_effect=lambda trader_id, currency, trading_amount, non_trading_amount: balance(
                str(non_trading_amount), currency
            )
        )

        audit = audit_cls.return_value
        audit.add = AsyncMock(return_value=1)

        bank = bank_cls.return_value
        bank.create = AsyncMock(
            side_effect=lambda trader_id, currency, name, number: BankAccountDTO(
                id=3, trader_id=trader_id, currency=currency, bank_name=name, bank_account_number=number
            )
        )

        iso = iso_cls.return_value
        iso.is_currency_active = AsyncMock(return_value=True)
        iso.active_currencies = AsyncMock(return_value={"USD", "JPY"})
        iso.minor_units = AsyncMock(return_value=2)

        yield SimpleNamespace(balances=balances, audit=audit, bank=bank, iso=iso)


@pytest.fixture
def account_service(mock_db_client):
    return AccountService(db_client=mock_db_client, locks=KeyedLocks())


# ==================== TESTS DE DEPÓSITO ====================

@pytest.mark.asyncio
async def test_first_deposit_creates_balance(account_service, repos):
    result = await account_service.deposit(TRADER, "usd", Decimal("2000.00"))

    assert isinstance(result, Ok)
    assert result.value.non_trading_amount == Decimal("2000.00")
    assert result.value.decimal_places_to_display == 2
    repos.balances.create.assert_awaited_once_with(TRADER, "USD", Decimal("2000.00"))
    repos.audit.add.assert_awaited_once_with(TRADER, "USD", "Deposited USD 2,000.0000")


@pytest.mark.asyncio
async def test_deposit_adds_to_existing_balance(account_service, repos):
    repos.balances.get_for_update.return_value = balance("500")

    result = await account_service.deposit(TRADER, "USD", "250.50")

    assert isinstance(result, Ok)
    assert result.value.non_trading_amount == Decimal("750.50")
    repos.balances.create.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1"), Decimal("1000000000000")])
async def test_deposit_out_of_range(account_service, mock_db_client, amount):
    result = await account_service.deposit(TRADER, "USD", amount)

    assert isinstance(result, Rejected)
    mock_db_client.transaction.assert_not_called()


@pytest.mark.asyncio
async def test_deposit_pushing_balance_to_ceiling(account_service, repos):
    repos.balances.get_for_update.return_value = balance("999999999999")

    result = await account_service.deposit(TRADER, "USD", Decimal("1"))

    assert isinstance(result, Conflict)
    repos.balances.update_amounts.assert_not_awaited()
    repos.audit.add.assert_not_awaited()


@pytest.mark.asyncio
async def test_deposit_inactive_currency(account_service, repos):
    repos.iso.is_currency_active.return_value = False

    result = await account_service.deposit(TRADER, "XXX", Decimal("10"))

    assert isinstance(result, NotFound)
    repos.balances.create.assert_not_awaited()


# ==================== TESTS DE SALDOS ====================

@pytest.mark.asyncio
async def test_balances_only_active_currencies(account_service, repos):
    repos.balances.list_for_trader.return_value = [
        balance("10", "USD"),
        balance("20", "HKD"),
        balance("30", "JPY"),
    ]
    repos.iso.minor_units.side_effect = lambda currency: {"USD": 2, "JPY": 0}[currency]

    balances = await account_service.balances(TRADER)

    assert [b.currency for b in balances] == ["USD", "JPY"]
    assert [b.decimal_places_to_display for b in balances] == [2, 0]


@pytest.mark.asyncio
async def test_balances_filtered_by_currency(account_service, repos):
    repos.balances.list_for_trader.return_value = [balance("10", "USD"), balance("30", "JPY")]

    balances = await account_service.balances(TRADER, "jpy")

    assert [b.currency for b in balances] == ["JPY"]


def test_balance_for_display_scales_to_minor_units():
    shown = AccountBalanceDTO(
        trader_id=TRADER,
        currency="JPY",
        trading_amount=Decimal("1001.6200"),
        non_trading_amount=Decimal("998.3800"),
        decimal_places_to_display=0,
    ).for_display()

    assert str(shown.trading_amount) == "1002"
    assert str(shown.non_trading_amount) == "998"


# ==================== TESTS DE CUENTAS BANCARIAS ====================

@pytest.mark.asyncio
async def test_register_bank_account(account_service, repos):
    result = await account_service.register_bank_account(TRADER, "usd", "First Bank", "123-456")

    assert isinstance(result, Ok)
    assert result.value.currency == "USD"
    repos.bank.create.assert_awaited_once_with(TRADER, "USD", "First Bank", "123-456")


@pytest.mark.asyncio
async def test_register_bank_account_requires_details(account_service, repos):
    result = await account_service.register_bank_account(TRADER, "USD", "", "123")

    assert isinstance(result, Rejected)
    repos.bank.create.assert_not_awaited()


def bank_account(trader_id=TRADER, in_use=True) -> BankAccountDTO:
    return BankAccountDTO(
        id=7,
        trader_id=trader_id,
        currency="USD",
        bank_name="First Bank",
        bank_account_number="123-456",
        in_use=in_use,
    )


@pytest.mark.asyncio
async def test_retire_bank_account(account_service, repos):
    repos.bank.get = AsyncMock(return_value=bank_account())
    repos.bank.mark_not_in_use = AsyncMock(return_value=bank_account(in_use=False))
    repos.bank.add_transaction = AsyncMock(return_value=1)

    result = await account_service.retire_bank_account(TRADER, 7)

    assert isinstance(result, Ok)
    assert result.value.in_use is False
    repos.bank.get.assert_awaited_once_with(7, for_update=True)
    description = repos.bank.add_transaction.await_args.args[1]
    assert description == "Marked not in use for bank First Bank with account number 123-456 for currency USD"


@pytest.mark.asyncio
async def test_retire_bank_account_twice_is_no_change(account_service, repos):
    repos.bank.get = AsyncMock(return_value=bank_account(in_use=False))
    repos.bank.mark_not_in_use = AsyncMock()

    result = await account_service.retire_bank_account(TRADER, 7)

    assert isinstance(result, NoChange)
    repos.bank.mark_not_in_use.assert_not_awaited()


@pytest.mark.asyncio
async def test_retire_unknown_bank_account(account_service, repos):
    repos.bank.get = AsyncMock(return_value=None)

    result = await account_service.retire_bank_account(TRADER, 7)

    assert isinstance(result, NotFound)


@pytest.mark.asyncio
async def test_retire_someone_elses_bank_account(account_service, repos):
    repos.bank.get = AsyncMock(return_value=bank_account(trader_id="other"))
    repos.bank.mark_not_in_use = AsyncMock()

    result = await account_service.retire_bank_account(TRADER, 7)

    assert isinstance(result, Conflict)
    repos.bank.mark_not_in_use.assert_not_awaited()

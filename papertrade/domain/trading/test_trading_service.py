import asyncio
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from papertrade.commons.enums.trading_enums import TradingDeed
from papertrade.commons.locks import KeyedLocks
from papertrade.commons.results import Conflict, DependencyFailure, NotFound, Ok, Rejected
from papertrade.domain.accounts.dtos.account_dto import AccountBalanceDTO, BankAccountDTO
from papertrade.domain.trading.dtos.transaction_dto import TradingTransactionDTO
from papertrade.domain.trading.sell_policy import CurrencyConsistencySellPolicy
from papertrade.domain.trading.trading_service import TradingService
from papertrade.infrastructure.quotes.quote_base import QuoteDTO, QuoteUnavailableError
from papertrade.infrastructure.quotes.static_quotes import StaticQuoteProvider

MODULE = "papertrade.domain.trading.trading_service"
TRADER = "trader-1"


def balance(non_trading: str, trading: str = "0") -> AccountBalanceDTO:
    return AccountBalanceDTO(
        trader_id=TRADER,
        currency="USD",
        trading_amount=Decimal(trading),
        non_trading_amount=Decimal(non_trading),
    )


def bought(quantity: int, txn_id: int = 1, currency: str = "USD") -> TradingTransactionDTO:
    return TradingTransactionDTO(
        id=txn_id,
        trader_id=TRADER,
        symbol="XYZ",
        symbol_name="XYZ Corp",
        deed=TradingDeed.BUY,
        quantity=quantity,
        currency=currency,
        price=Decimal("10.00"),
        cost=Decimal("1001.6200"),
    )


@pytest.fixture
def mock_db_client():
    """Mock del cliente de base de datos (transacción única)."""
    client = MagicMock()
    session = AsyncMock()
    client.get_session.return_value.__aenter__.return_value = session
    client.get_session.return_value.__aexit__.return_value = None
    client.transaction.return_value.__aenter__.return_value = session
    client.transaction.return_value.__aexit__.return_value = None
    return client


@pytest.fixture
def quote_provider():
    """Catálogo fijo: una acción en USD y un índice."""
    return StaticQuoteProvider(
        quotes=[
            QuoteDTO(symbol="XYZ", name="XYZ Corp", price=Decimal("10.00"), currency="USD"),
            QuoteDTO(symbol="^IDX", name="Some Index", price=Decimal("5000"), currency="USD", is_index=True),
        ]
    )


@pytest.fixture
def repos():
    """Repositorios parcheados dentro del módulo del servicio."""
    with patch(f"{MODULE}.AccountBalanceRepository") as balance_cls, \
            patch(f"{MODULE}.AccountTransactionRepository") as audit_cls, \
            patch(f"{MODULE}.TradingTransactionRepository") as ledger_cls, \
            patch(f"{MODULE}.BankAccountRepository") as bank_cls, \
            patch(f"{MODULE}.IsoDataRepository") as iso_cls:

        balances = balance_cls.return_value
        balances.get_for_update = AsyncMock(return_value=balance("2000.00"))
        balances.update_amounts = AsyncMock()

        audit = audit_cls.return_value
        audit.add = AsyncMock(return_value=1)

        ledger = ledger_cls.return_value
        ledger.list_for_symbol = AsyncMock(return_value=[])
        ledger.add = AsyncMock(side_effect=lambda dto: dto.model_copy(update={"id": 42}))

        bank = bank_cls.return_value
        bank.get = AsyncMock(return_value=None)
        bank.add_transaction = AsyncMock(return_value=1)

        iso = iso_cls.return_value
        iso.is_currency_active = AsyncMock(return_value=True)

        yield SimpleNamespace(balances=balances, audit=audit, ledger=ledger, bank=bank, iso=iso)


@pytest.fixture
def trading_service(mock_db_client, quote_provider):
    """Instancia del servicio con mocks."""
    return TradingService(
        db_client=mock_db_client,
        quote_provider=quote_provider,
        locks=KeyedLocks(),
    )


# ==================== TESTS DE VALIDACIÓN ====================

@pytest.mark.asyncio
@pytest.mark.parametrize("symbol, quantity", [("", 10), ("   ", 10), ("XYZ", 0), ("XYZ", -5)])
async def test_invalid_orders_are_rejected(trading_service, mock_db_client, symbol, quantity):
    result = await trading_service.buy(TRADER, symbol, quantity)

    assert isinstance(result, Rejected)
    mock_db_client.transaction.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("bank_account_id", [None, 0])
async def test_auto_transfer_without_bank_account_is_rejected(trading_service, bank_account_id):
    result = await trading_service.sell(
        TRADER, "XYZ", 10, auto_transfer_to_bank=True, bank_account_id=bank_account_id
    )
    assert isinstance(result, Rejected)


# ==================== TESTS DE COTIZACIÓN ====================

@pytest.mark.asyncio
async def test_unknown_symbol_not_found(trading_service, mock_db_client):
    result = await trading_service.buy(TRADER, "NOPE", 1)

    assert isinstance(result, NotFound)
    mock_db_client.transaction.assert_not_called()


@pytest.mark.asyncio
async def test_index_is_not_tradeable(trading_service):
    result = await trading_service.buy(TRADER, "^IDX", 1)

    assert isinstance(result, NotFound)
    assert "index rather than an equity" in result.reason


@pytest.mark.asyncio
async def test_quote_timeout_is_dependency_failure(mock_db_client):
    provider = MagicMock()
    provider.get_quote = AsyncMock(side_effect=QuoteUnavailableError("timed out"))
    service = TradingService(mock_db_client, provider, KeyedLocks())

    result = await service.sell(TRADER, "XYZ", 1)

    assert isinstance(result, DependencyFailure)
    mock_db_client.transaction.assert_not_called()


@pytest.mark.asyncio
async def test_preview_cost(trading_service, mock_db_client):
    result = await trading_service.preview_cost(TRADER, "xyz", TradingDeed.BUY, 100)

    assert isinstance(result, Ok)
    assert result.value.total_cost == Decimal("1001.6200")
    mock_db_client.transaction.assert_not_called()


# ==================== TESTS DE BUY ====================

@pytest.mark.asyncio
async def test_buy_debits_non_trading_and_records_transaction(trading_service, repos):
    """Compra 100 XYZ a 10.00 con 2000.00 disponibles."""
    result = await trading_service.buy(TRADER, "XYZ", 100)

    assert isinstance(result, Ok)
    receipt = result.value
    assert receipt.transaction_id == 42
    assert receipt.total_cost == Decimal("1001.6200")
    assert receipt.description == "Bought 100 shares of XYZ at USD 10.00, total cost USD 1,001.6200"

    repos.balances.update_amounts.assert_awaited_once_with(
        TRADER,
        "USD",
        trading_amount=Decimal("1001.6200"),
        non_trading_amount=Decimal("998.3800"),
    )
    repos.audit.add.assert_awaited_once_with(TRADER, "USD", receipt.description)

    recorded: TradingTransactionDTO = repos.ledger.add.await_args.args[0]
    assert recorded.deed == TradingDeed.BUY
    assert recorded.quantity == 100
    assert recorded.cost == Decimal("1001.6200")
    assert recorded.portfolio_id is None


@pytest.mark.asyncio
async def test_buy_insufficient_funds(trading_service, repos):
    repos.balances.get_for_update.return_value = balance("1000.00")

    result = await trading_service.buy(TRADER, "XYZ", 100)

    assert isinstance(result, Conflict)
    assert "Insufficient funds" in result.reason
    repos.balances.update_amounts.assert_not_awaited()
    repos.ledger.add.assert_not_awaited()


@pytest.mark.asyncio
async def test_buy_without_balance_row(trading_service, repos):
    repos.balances.get_for_update.return_value = None

    result = await trading_service.buy(TRADER, "XYZ", 1)

    assert isinstance(result, NotFound)
    repos.ledger.add.assert_not_awaited()


@pytest.mark.asyncio
async def test_buy_inactive_currency(trading_service, repos):
    repos.iso.is_currency_active.return_value = False

    result = await trading_service.buy(TRADER, "XYZ", 1)

    assert isinstance(result, NotFound)
    repos.balances.get_for_update.assert_not_awaited()


# ==================== TESTS DE SELL ====================

@pytest.mark.asyncio
async def test_sell_more_than_outstanding(trading_service, repos):
    repos.ledger.list_for_symbol.return_value = [bought(100)]

    result = await trading_service.sell(TRADER, "XYZ", 150)

    assert isinstance(result, Conflict)
    assert "100 outstanding" in result.reason
    repos.ledger.add.assert_not_awaited()
    repos.balances.update_amounts.assert_not_awaited()


@pytest.mark.asyncio
async def test_sell_credits_proceeds(trading_service, quote_provider, repos):
    """Venta de 100 XYZ a 12.00 después de la compra."""
    quote_provider.set_price("XYZ", Decimal("12.00"))
    repos.balances.get_for_update.return_value = balance("998.38", trading="1001.62")
    repos.ledger.list_for_symbol.return_value = [bought(100)]

    result = await trading_service.sell(TRADER, "XYZ", 100)

    assert isinstance(result, Ok)
    assert result.value.total_cost == Decimal("1197.3560")
    assert result.value.transferred_to_bank_account_id is None
    repos.balances.update_amounts.assert_awaited_once_with(
        TRADER,
        "USD",
        trading_amount=Decimal("0"),
        non_trading_amount=Decimal("2195.7360"),
    )
    recorded: TradingTransactionDTO = repos.ledger.add.await_args.args[0]
    assert recorded.deed == TradingDeed.SELL
    assert recorded.cost == Decimal("1197.3560")


@pytest.mark.asyncio
async def test_sell_with_bank_transfer(trading_service, quote_provider, repos):
    quote_provider.set_price("XYZ", Decimal("12.00"))
    repos.balances.get_for_update.return_value = balance("998.38", trading="1001.62")
    repos.ledger.list_for_symbol.return_value = [bought(100)]
    repos.bank.get.return_value = BankAccountDTO(
        id=7, trader_id=TRADER, currency="USD", bank_name="First Bank", bank_account_number="123-456"
    )

    result = await trading_service.sell(TRADER, "XYZ", 100, auto_transfer_to_bank=True, bank_account_id=7)

    assert isinstance(result, Ok)
    assert result.value.transferred_to_bank_account_id == 7
    repos.balances.update_amounts.assert_awaited_once_with(
        TRADER,
        "USD",
        trading_amount=Decimal("0"),
        non_trading_amount=Decimal("998.3800"),
    )
    assert repos.audit.add.await_count == 2
    transfer_description = repos.bank.add_transaction.await_args.args[1]
    assert transfer_description.startswith("Transferred USD 1,197.3560 to bank First Bank")


@pytest.mark.asyncio
async def test_sell_to_someone_elses_bank_account(trading_service, repos):
    repos.ledger.list_for_symbol.return_value = [bought(100)]
    repos.bank.get.return_value = BankAccountDTO(
        id=7, trader_id="other", currency="USD", bank_name="First Bank", bank_account_number="1"
    )

    result = await trading_service.sell(TRADER, "XYZ", 10, auto_transfer_to_bank=True, bank_account_id=7)

    assert isinstance(result, NotFound)
    repos.ledger.add.assert_not_awaited()


@pytest.mark.asyncio
async def test_sell_to_bank_account_in_other_currency(trading_service, repos):
    repos.ledger.list_for_symbol.return_value = [bought(100)]
    repos.bank.get.return_value = BankAccountDTO(
        id=7, trader_id=TRADER, currency="HKD", bank_name="First Bank", bank_account_number="1"
    )

    result = await trading_service.sell(TRADER, "XYZ", 10, auto_transfer_to_bank=True, bank_account_id=7)

    assert isinstance(result, Conflict)
    repos.balances.update_amounts.assert_not_awaited()


@pytest.mark.asyncio
async def test_sell_to_bank_account_not_in_use(trading_service, repos):
    repos.ledger.list_for_symbol.return_value = [bought(100)]
    repos.bank.get.return_value = BankAccountDTO(
        id=7, trader_id=TRADER, currency="USD", bank_name="First Bank", bank_account_number="1", in_use=False
    )

    result = await trading_service.sell(TRADER, "XYZ", 10, auto_transfer_to_bank=True, bank_account_id=7)

    assert isinstance(result, Conflict)
    assert "not in use" in result.reason
    repos.ledger.add.assert_not_awaited()
    repos.bank.add_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_sell_above_balance_ceiling(mock_db_client, quote_provider, repos):
    service = TradingService(mock_db_client, quote_provider, KeyedLocks(), amount_limit=Decimal("2500"))
    repos.ledger.list_for_symbol.return_value = [bought(100)]

    result = await service.sell(TRADER, "XYZ", 100)

    assert isinstance(result, Conflict)
    repos.ledger.add.assert_not_awaited()


@pytest.mark.asyncio
async def test_sell_guard_refuses_cross_currency_holding(mock_db_client, quote_provider, repos):
    service = TradingService(
        mock_db_client, quote_provider, KeyedLocks(), sell_policy=CurrencyConsistencySellPolicy()
    )
    repos.ledger.list_for_symbol.return_value = [bought(100, currency="HKD"), bought(10, txn_id=2)]

    result = await service.sell(TRADER, "XYZ", 5)

    assert isinstance(result, Conflict)
    assert "HKD" in result.reason


@pytest.mark.asyncio
async def test_sell_with_transfer_near_ceiling(mock_db_client, quote_provider, repos):
    """Con transferencia el saldo no cambia, así que el tope no aplica."""
    service = TradingService(mock_db_client, quote_provider, KeyedLocks(), amount_limit=Decimal("2500"))
    repos.balances.get_for_update.return_value = balance("2000.00")
    repos.ledger.list_for_symbol.return_value = [bought(100)]
    repos.bank.get.return_value = BankAccountDTO(
        id=7, trader_id=TRADER, currency="USD", bank_name="First Bank", bank_account_number="1"
    )

    result = await service.sell(TRADER, "XYZ", 100, auto_transfer_to_bank=True, bank_account_id=7)

    assert isinstance(result, Ok)
    assert repos.balances.update_amounts.await_args.kwargs["non_trading_amount"] == Decimal("2000.00")


# ==================== TESTS DE CONCURRENCIA ====================

@pytest.mark.asyncio
async def test_concurrent_buys_same_currency_are_serialized(trading_service, repos):
    """
    Dos compras de 1001.62 contra un saldo de 2000.00: solo una puede pasar.
    """
    state = {"balance": balance("2000.00")}

    async def get_for_update(trader_id, currency):
        current = state["balance"]
        await asyncio.sleep(0)
        return current

    async def update_amounts(trader_id, currency, trading_amount, non_trading_amount):
        state["balance"] = balance(str(non_trading_amount), trading=str(trading_amount))
        return state["balance"]

    repos.balances.get_for_update.side_effect = get_for_update
    repos.balances.update_amounts.side_effect = update_amounts

    results = await asyncio.gather(
        trading_service.buy(TRADER, "XYZ", 100),
        trading_service.buy(TRADER, "XYZ", 100),
    )

    assert sorted(type(r).__name__ for r in results) == ["Conflict", "Ok"]
    assert state["balance"].non_trading_amount == Decimal("998.3800")
    assert repos.ledger.add.await_count == 1


# ==================== TESTS DE HISTORIAL ====================

@pytest.mark.asyncio
async def test_transactions_filters_inactive_currencies(trading_service, repos):
    repos.iso.active_currencies = AsyncMock(return_value={"USD"})
    repos.ledger.list_for_trader = AsyncMock(
        return_value=[bought(100), bought(10, txn_id=2, currency="HKD")]
    )

    history = await trading_service.transactions(TRADER, unlinked=True)

    assert [t.id for t in history] == [1]
    repos.ledger.list_for_trader.assert_awaited_once_with(TRADER, None, unlinked=True)


@pytest.mark.asyncio
async def test_transactions_normalizes_currency(trading_service, repos):
    repos.iso.active_currencies = AsyncMock(return_value={"USD"})
    repos.ledger.list_for_trader = AsyncMock(return_value=[])

    await trading_service.transactions(TRADER, " usd ")

    repos.ledger.list_for_trader.assert_awaited_once_with(TRADER, "USD", unlinked=False)

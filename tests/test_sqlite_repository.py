import sqlite3
from decimal import Decimal

import pytest

from cbledger.banking_service import BankingService
from cbledger.config import Settings, load_settings
from cbledger.errors import StoreUnavailable
from cbledger.factory import build_services
from cbledger.services.sqlite_repository import SqliteBalanceLedgerStore, SqliteDatabase


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "data" / "ledger.sqlite")


def test_state_survives_reopen(db_path):
    first = build_services(Settings(store="sqlite", db_path=db_path))
    first.banking.bank_surplus(2024, "123.45")

    second = build_services(Settings(store="sqlite", db_path=db_path))
    assert second.banking.get_banked_amount(2024) == Decimal("123.45")
    assert second.banking.get_balance(2024).cb == Decimal("-123.45")


def test_seed_does_not_overwrite_existing_balance(db_path):
    seeded = build_services(Settings(store="sqlite", db_path=db_path, seed_demo=True))
    seeded.banking.bank_surplus(2024, 500000)

    reopened = build_services(Settings(store="sqlite", db_path=db_path, seed_demo=True))
    assert reopened.banking.get_balance(2024).cb == Decimal("1000000")


def test_get_balance_materialises_row(db_path):
    services = build_services(Settings(store="sqlite", db_path=db_path))
    services.banking.get_balance(2031)

    with sqlite3.connect(db_path) as conn:
        row = conn.execute("SELECT cb FROM compliance_balances WHERE year = 2031").fetchone()
    assert row == ("0",)


def test_locked_database_surfaces_store_unavailable(db_path):
    database = SqliteDatabase(db_path, timeout=0.05, lock_retries=2)
    banking = BankingService(SqliteBalanceLedgerStore(database))
    banking.bank_surplus(2024, 10)

    blocker = sqlite3.connect(db_path, isolation_level=None)
    try:
        blocker.execute("BEGIN IMMEDIATE")
        with pytest.raises(StoreUnavailable):
            banking.bank_surplus(2024, 10)
    finally:
        blocker.execute("ROLLBACK")
        blocker.close()

    assert banking.get_banked_amount(2024) == Decimal("10")


def test_failure_inside_transaction_rolls_back(db_path):
    store = SqliteBalanceLedgerStore(SqliteDatabase(db_path))

    with pytest.raises(RuntimeError):
        with store.year_transaction(2024) as position:
            position.cb += Decimal("99")
            position.banked += Decimal("1")
            raise RuntimeError("abort")

    assert store.read_balance(2024) is None
    assert store.read_banked(2024) is None


def test_unreachable_database_path(tmp_path):
    blocked = tmp_path / "not-a-dir"
    blocked.write_text("")

    with pytest.raises(StoreUnavailable):
        SqliteDatabase(str(blocked / "ledger.sqlite"))


def test_load_settings_from_environment():
    settings = load_settings({
        "CBLEDGER_STORE": "SQLite",
        "CBLEDGER_DB_PATH": "/tmp/x.sqlite",
        "CBLEDGER_LOCK_RETRIES": "3",
        "CBLEDGER_SEED_DEMO": "true",
        "CBLEDGER_LOG_LEVEL": "debug",
    })

    assert settings.store == "sqlite"
    assert settings.db_path == "/tmp/x.sqlite"
    assert settings.lock_retries == 3
    assert settings.seed_demo
    assert settings.log_level == "DEBUG"
    assert load_settings({}).store == "memory"


def test_load_settings_rejects_unknown_store():
    with pytest.raises(ValueError):
        load_settings({"CBLEDGER_STORE": "postgres"})

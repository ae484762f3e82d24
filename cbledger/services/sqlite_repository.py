# ==============================================================================
# CBLEDGER | cbledger/services/sqlite_repository.py
# Persistente Stores auf SQLite
#
#   - Jede Schreiboperation laeuft in BEGIN IMMEDIATE (Write-Lock vor dem Lesen)
#   - Lock-Konflikte werden begrenzt wiederholt, danach StoreUnavailable
#   - Betraege werden als TEXT gespeichert (Decimal ohne Float-Verlust)
# ==============================================================================

import logging
import os
import sqlite3
import time
import uuid
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

from cbledger.config import DEFAULT_DB_TIMEOUT, DEFAULT_LOCK_RETRIES
from cbledger.errors import StoreUnavailable
from cbledger.models import Baseline, Pool, PoolMember, Route, ShipCompliance, YearPosition, utc_now

logger = logging.getLogger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS compliance_balances (
        year INTEGER PRIMARY KEY,
        cb TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS banking (
        year INTEGER PRIMARY KEY,
        banked_amount TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ship_compliance (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        ship_id TEXT NOT NULL,
        year INTEGER NOT NULL,
        cb_gco2eq TEXT NOT NULL,
        route_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (ship_id, year)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pools (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        pool_id TEXT NOT NULL UNIQUE,
        name TEXT,
        year INTEGER NOT NULL,
        pool_sum TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pool_members (
        pool_id TEXT NOT NULL REFERENCES pools (pool_id),
        position INTEGER NOT NULL,
        ship_id TEXT NOT NULL,
        adjusted_cb TEXT NOT NULL,
        cb_before TEXT NOT NULL,
        cb_after TEXT NOT NULL,
        PRIMARY KEY (pool_id, position)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS routes (
        route_id TEXT PRIMARY KEY,
        vessel_type TEXT NOT NULL,
        fuel_type TEXT NOT NULL,
        year INTEGER NOT NULL,
        ghg_intensity TEXT NOT NULL,
        fuel_consumption TEXT NOT NULL,
        distance TEXT NOT NULL,
        total_emissions TEXT NOT NULL,
        is_baseline INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS baselines (
        route_id TEXT NOT NULL,
        year INTEGER NOT NULL,
        ghg_intensity TEXT NOT NULL,
        fuel_consumption TEXT NOT NULL,
        distance TEXT NOT NULL,
        total_emissions TEXT NOT NULL,
        PRIMARY KEY (route_id, year)
    )
    """,
]


class SqliteDatabase:
    """Verbindungs- und Transaktionsverwaltung fuer alle SQLite-Stores."""

    def __init__(self, db_path, timeout=DEFAULT_DB_TIMEOUT, lock_retries=DEFAULT_LOCK_RETRIES):
        self.db_path = db_path
        self.timeout = timeout
        self.lock_retries = max(1, lock_retries)

        directory = os.path.dirname(db_path)
        if directory:
            try:
                os.makedirs(directory, exist_ok=True)
            except OSError as e:
                raise StoreUnavailable(f"DATABASE_PATH_INVALID: {e}") from e
        self._init_schema()

    def _init_schema(self):
        with self.connection() as conn:
            try:
                conn.execute("PRAGMA journal_mode = WAL")
                conn.execute("PRAGMA synchronous = FULL")
                for statement in SCHEMA:
                    conn.execute(statement)
            except sqlite3.Error as e:
                logger.error("Schema initialisation failed for %s: %s", self.db_path, e)
                raise StoreUnavailable(f"SCHEMA_INIT_FAILED: {e}") from e

    @contextmanager
    def connection(self):
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            logger.error("Cannot open database %s: %s", self.db_path, e)
            raise StoreUnavailable(f"DATABASE_UNAVAILABLE: {e}") from e
        try:
            yield conn
        finally:
            conn.close()

    def _begin_immediate(self, cursor):
        for attempt in range(self.lock_retries):
            try:
                cursor.execute("BEGIN IMMEDIATE")
                return
            except sqlite3.OperationalError as e:
                if "locked" in str(e).lower() and attempt < self.lock_retries - 1:
                    time.sleep(0.02 * (attempt + 1))
                else:
                    logger.error("Write lock not acquired after %d attempts: %s", attempt + 1, e)
                    raise StoreUnavailable(f"DATABASE_LOCKED: {e}") from e

    @contextmanager
    def transaction(self):
        """Write-Transaktion: COMMIT bei Erfolg, sonst ROLLBACK und Fehler weiterreichen."""
        with self.connection() as conn:
            cursor = conn.cursor()
            self._begin_immediate(cursor)
            try:
                yield cursor
                cursor.execute("COMMIT")
            except sqlite3.Error as e:
                if conn.in_transaction:
                    cursor.execute("ROLLBACK")
                logger.error("Transaction rolled back: %s", e)
                raise StoreUnavailable(f"TRANSACTION_FAILED: {e}") from e
            except BaseException:
                if conn.in_transaction:
                    cursor.execute("ROLLBACK")
                raise

    def fetch_all(self, sql, params=()):
        with self.connection() as conn:
            try:
                return conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.error("Query failed: %s", e)
                raise StoreUnavailable(f"QUERY_FAILED: {e}") from e

    def fetch_one(self, sql, params=()):
        rows = self.fetch_all(sql, params)
        return rows[0] if rows else None


def _ts(value):
    return datetime.fromisoformat(value) if value else None


class SqliteBalanceLedgerStore:
    def __init__(self, database: SqliteDatabase):
        self.db = database

    def read_balance(self, year):
        row = self.db.fetch_one("SELECT cb FROM compliance_balances WHERE year = ?", (year,))
        return Decimal(row[0]) if row else None

    def read_banked(self, year):
        row = self.db.fetch_one("SELECT banked_amount FROM banking WHERE year = ?", (year,))
        return Decimal(row[0]) if row else None

    def ensure_year(self, year):
        with self.db.transaction() as cursor:
            cursor.execute(
                "INSERT INTO compliance_balances (year, cb, updated_at) VALUES (?, '0', ?) "
                "ON CONFLICT (year) DO NOTHING",
                (year, utc_now().isoformat()),
            )

    @contextmanager
    def year_transaction(self, year):
        with self.db.transaction() as cursor:
            cb_row = cursor.execute("SELECT cb FROM compliance_balances WHERE year = ?", (year,)).fetchone()
            banked_row = cursor.execute("SELECT banked_amount FROM banking WHERE year = ?", (year,)).fetchone()

            position = YearPosition(
                year=year,
                cb=Decimal(cb_row[0]) if cb_row else Decimal("0"),
                banked=Decimal(banked_row[0]) if banked_row else Decimal("0"),
            )
            yield position

            now = utc_now().isoformat()
            cursor.execute(
                "INSERT INTO compliance_balances (year, cb, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT (year) DO UPDATE SET cb = excluded.cb, updated_at = excluded.updated_at",
                (year, str(position.cb), now),
            )
            cursor.execute(
                "INSERT INTO banking (year, banked_amount, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT (year) DO UPDATE SET banked_amount = excluded.banked_amount, "
                "updated_at = excluded.updated_at",
                (year, str(position.banked), now),
            )


class SqliteShipComplianceStore:
    _COLUMNS = "id, ship_id, year, cb_gco2eq, route_id, created_at, updated_at"

    def __init__(self, database: SqliteDatabase):
        self.db = database

    @staticmethod
    def _to_record(row):
        return ShipCompliance(
            id=row[0],
            ship_id=row[1],
            year=row[2],
            cb_gco2eq=Decimal(row[3]),
            route_id=row[4],
            created_at=_ts(row[5]),
            updated_at=_ts(row[6]),
        )

    def read(self, ship_id, year):
        row = self.db.fetch_one(
            f"SELECT {self._COLUMNS} FROM ship_compliance WHERE ship_id = ? AND year = ?",
            (ship_id, year),
        )
        return self._to_record(row) if row else None

    def read_all(self, year):
        rows = self.db.fetch_all(
            f"SELECT {self._COLUMNS} FROM ship_compliance WHERE year = ? ORDER BY id ASC",
            (year,),
        )
        return [self._to_record(r) for r in rows]

    def upsert(self, record):
        now = utc_now().isoformat()
        with self.db.transaction() as cursor:
            # id und created_at bleiben beim Update unveraendert
            cursor.execute(
                "INSERT INTO ship_compliance (ship_id, year, cb_gco2eq, route_id, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (ship_id, year) DO UPDATE SET "
                "cb_gco2eq = excluded.cb_gco2eq, route_id = excluded.route_id, updated_at = excluded.updated_at",
                (record.ship_id, record.year, str(record.cb_gco2eq), record.route_id, now, now),
            )
            row = cursor.execute(
                f"SELECT {self._COLUMNS} FROM ship_compliance WHERE ship_id = ? AND year = ?",
                (record.ship_id, record.year),
            ).fetchone()
        return self._to_record(row)


class SqlitePoolStore:
    def __init__(self, database: SqliteDatabase):
        self.db = database

    def new_pool_id(self):
        return f"POOL-{uuid.uuid4().hex.upper()}"

    def append(self, pool):
        # Pool und Mitglieder in einer Transaktion: ganz oder gar nicht
        with self.db.transaction() as cursor:
            cursor.execute(
                "INSERT INTO pools (pool_id, name, year, pool_sum, created_at) VALUES (?, ?, ?, ?, ?)",
                (pool.pool_id, pool.name, pool.year, str(pool.pool_sum), pool.created_at.isoformat()),
            )
            cursor.executemany(
                "INSERT INTO pool_members (pool_id, position, ship_id, adjusted_cb, cb_before, cb_after) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (pool.pool_id, i, m.ship_id, str(m.adjusted_cb), str(m.cb_before), str(m.cb_after))
                    for i, m in enumerate(pool.members)
                ],
            )
        return pool

    def _load_members(self, pool_id):
        rows = self.db.fetch_all(
            "SELECT ship_id, adjusted_cb, cb_before, cb_after FROM pool_members "
            "WHERE pool_id = ? ORDER BY position ASC",
            (pool_id,),
        )
        return [PoolMember(r[0], Decimal(r[1]), Decimal(r[2]), Decimal(r[3])) for r in rows]

    def _to_pool(self, row):
        return Pool(
            pool_id=row[0],
            name=row[1],
            year=row[2],
            pool_sum=Decimal(row[3]),
            created_at=_ts(row[4]),
            members=self._load_members(row[0]),
        )

    def read_all(self):
        rows = self.db.fetch_all("SELECT pool_id, name, year, pool_sum, created_at FROM pools ORDER BY seq ASC")
        return [self._to_pool(r) for r in rows]

    def read(self, pool_id):
        row = self.db.fetch_one(
            "SELECT pool_id, name, year, pool_sum, created_at FROM pools WHERE pool_id = ?",
            (pool_id,),
        )
        return self._to_pool(row) if row else None


class SqliteRouteStore:
    _COLUMNS = (
        "route_id, vessel_type, fuel_type, year, ghg_intensity, "
        "fuel_consumption, distance, total_emissions, is_baseline"
    )

    def __init__(self, database: SqliteDatabase):
        self.db = database

    @staticmethod
    def _to_route(row):
        return Route(
            route_id=row[0],
            vessel_type=row[1],
            fuel_type=row[2],
            year=row[3],
            ghg_intensity=Decimal(row[4]),
            fuel_consumption=Decimal(row[5]),
            distance=Decimal(row[6]),
            total_emissions=Decimal(row[7]),
            is_baseline=bool(row[8]),
        )

    def add_route(self, route):
        with self.db.transaction() as cursor:
            cursor.execute(
                f"INSERT OR REPLACE INTO routes ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    route.route_id, route.vessel_type, route.fuel_type, route.year,
                    str(route.ghg_intensity), str(route.fuel_consumption), str(route.distance),
                    str(route.total_emissions), int(route.is_baseline),
                ),
            )

    def read_all(self):
        rows = self.db.fetch_all(f"SELECT {self._COLUMNS} FROM routes ORDER BY rowid ASC")
        return [self._to_route(r) for r in rows]

    def read(self, route_id):
        row = self.db.fetch_one(f"SELECT {self._COLUMNS} FROM routes WHERE route_id = ?", (route_id,))
        return self._to_route(row) if row else None

    def save_baseline(self, baseline):
        with self.db.transaction() as cursor:
            cursor.execute(
                "INSERT OR REPLACE INTO baselines "
                "(route_id, year, ghg_intensity, fuel_consumption, distance, total_emissions) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    baseline.route_id, baseline.year, str(baseline.ghg_intensity),
                    str(baseline.fuel_consumption), str(baseline.distance), str(baseline.total_emissions),
                ),
            )
            cursor.execute("UPDATE routes SET is_baseline = 1 WHERE route_id = ?", (baseline.route_id,))
        return baseline

    def read_baseline(self, route_id, year):
        row = self.db.fetch_one(
            "SELECT route_id, year, ghg_intensity, fuel_consumption, distance, total_emissions "
            "FROM baselines WHERE route_id = ? AND year = ?",
            (route_id, year),
        )
        if not row:
            return None
        return Baseline(
            route_id=row[0],
            year=row[1],
            ghg_intensity=Decimal(row[2]),
            fuel_consumption=Decimal(row[3]),
            distance=Decimal(row[4]),
            total_emissions=Decimal(row[5]),
        )

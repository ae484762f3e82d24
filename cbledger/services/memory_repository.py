import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal

from cbledger.models import Pool, Route, ShipCompliance, YearPosition, utc_now

logger = logging.getLogger(__name__)


class MemoryBalanceLedgerStore:
    """Jahresaggregat (cb, banked) im Speicher, ein Lock pro Jahr."""

    def __init__(self):
        self._balances = {}
        self._banked = {}
        self._year_locks = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, year):
        with self._registry_lock:
            lock = self._year_locks.get(year)
            if lock is None:
                lock = threading.Lock()
                self._year_locks[year] = lock
            return lock

    def read_balance(self, year):
        with self._lock_for(year):
            return self._balances.get(year)

    def read_banked(self, year):
        with self._lock_for(year):
            return self._banked.get(year)

    def ensure_year(self, year):
        with self._lock_for(year):
            self._balances.setdefault(year, Decimal("0"))

    @contextmanager
    def year_transaction(self, year):
        with self._lock_for(year):
            position = YearPosition(
                year=year,
                cb=self._balances.get(year, Decimal("0")),
                banked=self._banked.get(year, Decimal("0")),
            )
            yield position
            # Nur bei fehlerfreiem Durchlauf zurueckschreiben
            self._balances[year] = position.cb
            self._banked[year] = position.banked


class MemoryShipComplianceStore:
    def __init__(self):
        self._records = []
        self._next_id = 1
        self._lock = threading.Lock()

    def read(self, ship_id, year):
        with self._lock:
            for record in self._records:
                if record.ship_id == ship_id and record.year == year:
                    return replace(record)
        return None

    def read_all(self, year):
        with self._lock:
            return [replace(r) for r in self._records if r.year == year]

    def upsert(self, record):
        now = utc_now()
        with self._lock:
            for index, existing in enumerate(self._records):
                if existing.ship_id == record.ship_id and existing.year == record.year:
                    stored = replace(
                        record,
                        id=existing.id,
                        created_at=existing.created_at,
                        updated_at=now,
                    )
                    self._records[index] = stored
                    return replace(stored)

            stored = replace(record, id=self._next_id, created_at=now, updated_at=now)
            self._next_id += 1
            self._records.append(stored)
            return replace(stored)


class MemoryPoolStore:
    def __init__(self):
        self._pools = []
        self._lock = threading.Lock()

    def new_pool_id(self):
        return f"POOL-{uuid.uuid4().hex.upper()}"

    def append(self, pool):
        with self._lock:
            self._pools.append(_copy_pool(pool))
        return _copy_pool(pool)

    def read_all(self):
        with self._lock:
            return [_copy_pool(p) for p in self._pools]

    def read(self, pool_id):
        with self._lock:
            for pool in self._pools:
                if pool.pool_id == pool_id:
                    return _copy_pool(pool)
        return None


def _copy_pool(pool: Pool) -> Pool:
    return replace(pool, members=[replace(m) for m in pool.members])


class MemoryRouteStore:
    def __init__(self, routes=None):
        self._routes = {r.route_id: replace(r) for r in (routes or [])}
        self._baselines = {}
        self._lock = threading.Lock()

    def add_route(self, route):
        with self._lock:
            self._routes[route.route_id] = replace(route)

    def read_all(self):
        with self._lock:
            return [replace(r) for r in self._routes.values()]

    def read(self, route_id):
        with self._lock:
            route = self._routes.get(route_id)
            return replace(route) if route else None

    def save_baseline(self, baseline):
        with self._lock:
            self._baselines[(baseline.route_id, baseline.year)] = replace(baseline)
            route = self._routes.get(baseline.route_id)
            if route is not None:
                route.is_baseline = True
        return replace(baseline)

    def read_baseline(self, route_id, year):
        with self._lock:
            baseline = self._baselines.get((route_id, year))
            return replace(baseline) if baseline else None


# ------------------------------------------------------------------------------
# DEMO DATEN (Referenz-Datensatz des Cockpits)
# ------------------------------------------------------------------------------

DEMO_ROUTES = [
    Route("route-001", "Container Ship", "MGO", 2024, Decimal("85.5"), Decimal("5000000"), Decimal("1200"), Decimal("427500000")),
    Route("route-002", "Bulk Carrier", "HFO", 2024, Decimal("92.3"), Decimal("8000000"), Decimal("2000"), Decimal("738400000")),
    Route("route-003", "Tanker", "LNG", 2024, Decimal("78.2"), Decimal("6000000"), Decimal("1500"), Decimal("469200000")),
    Route("R001", "Container Ship", "HFO", 2023, Decimal("91.5"), Decimal("2500"), Decimal("5000"), Decimal("7500")),
    Route("R002", "Tanker", "VLSFO", 2023, Decimal("88.2"), Decimal("3200"), Decimal("6500"), Decimal("9200")),
]

DEMO_SHIP_BALANCES = [
    ("ship-001", 2024, Decimal("500000")),
    ("ship-002", 2024, Decimal("-300000")),
    ("ship-003", 2024, Decimal("800000")),
    ("ship-004", 2024, Decimal("-200000")),
]

DEMO_YEAR_BALANCES = {2024: Decimal("1500000")}


def seed_demo_data(ledger_store, ship_store, route_store):
    """Laedt den Referenz-Datensatz in beliebige Store-Implementierungen."""
    for year, cb in DEMO_YEAR_BALANCES.items():
        # Bereits gefuehrte Jahre nicht ueberschreiben
        if ledger_store.read_balance(year) is not None:
            continue
        with ledger_store.year_transaction(year) as position:
            position.cb = cb

    for ship_id, year, cb in DEMO_SHIP_BALANCES:
        if ship_store.read(ship_id, year) is None:
            ship_store.upsert(ShipCompliance(ship_id=ship_id, year=year, cb_gco2eq=cb))

    for route in DEMO_ROUTES:
        if route_store.read(route.route_id) is None:
            route_store.add_route(route)

    logger.info("Demo data seeded: %d routes, %d ship balances.", len(DEMO_ROUTES), len(DEMO_SHIP_BALANCES))

import logging
from dataclasses import dataclass

from cbledger.banking_service import BankingService
from cbledger.config import Settings, load_settings
from cbledger.engine_fueleu import FuelEUEngine
from cbledger.pooling_service import PoolingService
from cbledger.route_service import RouteService
from cbledger.services.memory_repository import (
    MemoryBalanceLedgerStore,
    MemoryPoolStore,
    MemoryRouteStore,
    MemoryShipComplianceStore,
    seed_demo_data,
)
from cbledger.services.sqlite_repository import (
    SqliteBalanceLedgerStore,
    SqliteDatabase,
    SqlitePoolStore,
    SqliteRouteStore,
    SqliteShipComplianceStore,
)
from cbledger.ship_compliance_service import ShipComplianceService

logger = logging.getLogger(__name__)


@dataclass
class LedgerServices:
    banking: BankingService
    ship_compliance: ShipComplianceService
    pooling: PoolingService
    routes: RouteService


def build_services(settings: Settings = None, calculator=None) -> LedgerServices:
    """Composition Root: Stores nach Settings waehlen und Services verdrahten."""
    settings = settings or load_settings()

    if settings.store == "sqlite":
        database = SqliteDatabase(settings.db_path, timeout=settings.db_timeout, lock_retries=settings.lock_retries)
        ledger_store = SqliteBalanceLedgerStore(database)
        ship_store = SqliteShipComplianceStore(database)
        pool_store = SqlitePoolStore(database)
        route_store = SqliteRouteStore(database)
        logger.info("Using sqlite stores at %s.", settings.db_path)
    else:
        ledger_store = MemoryBalanceLedgerStore()
        ship_store = MemoryShipComplianceStore()
        pool_store = MemoryPoolStore()
        route_store = MemoryRouteStore()
        logger.info("Using in-memory stores.")

    if settings.seed_demo:
        seed_demo_data(ledger_store, ship_store, route_store)

    return LedgerServices(
        banking=BankingService(ledger_store),
        ship_compliance=ShipComplianceService(ship_store, calculator or FuelEUEngine(route_store)),
        pooling=PoolingService(pool_store, ship_store),
        routes=RouteService(route_store),
    )

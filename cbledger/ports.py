"""Store interfaces consumed by the ledger services.

Each store is substitutable: in-memory for tests and demos, sqlite for
persistent deployments. Lifecycle is owned by whoever builds the services
(see ``cbledger.factory``).
"""
from decimal import Decimal
from typing import ContextManager, List, Optional, Protocol

from cbledger.models import Baseline, Pool, Route, ShipCompliance, YearPosition


class BalanceLedgerStore(Protocol):
    """Yearly aggregate CB and banked amount, mutated together."""

    def read_balance(self, year: int) -> Optional[Decimal]:
        ...

    def read_banked(self, year: int) -> Optional[Decimal]:
        ...

    def ensure_year(self, year: int) -> None:
        """Materialise a zero row for ``year`` if none exists."""
        ...

    def year_transaction(self, year: int) -> ContextManager[YearPosition]:
        """Lock ``year`` and yield its position; write back on clean exit only."""
        ...


class ShipComplianceStore(Protocol):
    def read(self, ship_id: str, year: int) -> Optional[ShipCompliance]:
        ...

    def read_all(self, year: int) -> List[ShipCompliance]:
        ...

    def upsert(self, record: ShipCompliance) -> ShipCompliance:
        ...


class PoolStore(Protocol):
    def new_pool_id(self) -> str:
        ...

    def append(self, pool: Pool) -> Pool:
        ...

    def read_all(self) -> List[Pool]:
        ...

    def read(self, pool_id: str) -> Optional[Pool]:
        ...


class RouteStore(Protocol):
    def read_all(self) -> List[Route]:
        ...

    def read(self, route_id: str) -> Optional[Route]:
        ...

    def save_baseline(self, baseline: Baseline) -> Baseline:
        ...

    def read_baseline(self, route_id: str, year: int) -> Optional[Baseline]:
        ...


class ComplianceCalculator(Protocol):
    """External route-derived CB computation."""

    def compute(self, ship_id: str, year: int, route_id: str) -> Decimal:
        ...

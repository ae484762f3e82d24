import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from cbledger.errors import ComplianceComputationFailed, LedgerError
from cbledger.models import ShipCompliance
from cbledger.ports import ComplianceCalculator, ShipComplianceStore
from cbledger.validation import require_ship_id, require_year

logger = logging.getLogger(__name__)


class ShipComplianceService:
    """Per-(ship, year) CB registry with upsert semantics."""

    def __init__(self, ship_store: ShipComplianceStore, calculator: ComplianceCalculator):
        self.store = ship_store
        self.calculator = calculator

    def get_ship_compliance(self, ship_id, year):
        return self.store.read(require_ship_id(ship_id), require_year(year))

    def list_ship_compliance(self, year):
        return self.store.read_all(require_year(year))

    def save(self, record: ShipCompliance) -> ShipCompliance:
        normalized = replace(record, ship_id=require_ship_id(record.ship_id), year=require_year(record.year))
        return self.store.upsert(normalized)

    def compute_ship_compliance(self, ship_id, year, route_id=None) -> ShipCompliance:
        ship_id = require_ship_id(ship_id)
        year = require_year(year)
        if not isinstance(route_id, str) or route_id.strip() == "":
            logger.warning("routeId not provided, using shipId '%s' as routeId.", ship_id)
            route_id = ship_id
        route_id = route_id.strip()

        try:
            raw_cb = self.calculator.compute(ship_id, year, route_id)
        except LedgerError:
            # Domain- und Store-Fehler behalten ihre eigene Art
            raise
        except Exception as e:
            logger.error("CB computation crashed for %s/%s via %s: %s", ship_id, year, route_id, e)
            raise ComplianceComputationFailed(f"COMPUTATION_FAILED: {e}") from e

        if raw_cb is None or isinstance(raw_cb, bool):
            raise ComplianceComputationFailed(f"COMPUTATION_INVALID: '{raw_cb}' is not a CB value.")
        try:
            cb = Decimal(str(raw_cb))
        except InvalidOperation as e:
            raise ComplianceComputationFailed(f"COMPUTATION_INVALID: '{raw_cb}' is not a number.") from e
        if not cb.is_finite():
            raise ComplianceComputationFailed(f"COMPUTATION_INVALID: '{raw_cb}' is not a finite CB value.")

        saved = self.store.upsert(ShipCompliance(ship_id=ship_id, year=year, cb_gco2eq=cb, route_id=route_id))
        logger.info("Computed CB for %s in %s via %s: %s gCO2e.", ship_id, year, route_id, cb)
        return saved

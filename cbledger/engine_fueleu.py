from decimal import Decimal, InvalidOperation

from cbledger.config import ENERGY_PER_TONNE_MJ, FUELEU_REDUCTION_STEPS, REFERENCE_INTENSITY
from cbledger.errors import ComplianceComputationFailed, RouteNotFound
from cbledger.models import Baseline, Route


def target_intensity(year: int) -> Decimal:
    """Gibt den gueltigen Zielwert (gCO2e/MJ) fuer ein beliebiges Jahr zurueck.
    Vor 2025: Zielwert der ersten Stufe (89.3368).
    Nach letzter Stufe: letzter bekannter Wert.
    """
    reduction = FUELEU_REDUCTION_STEPS[0][1]
    for step_year, step_reduction in FUELEU_REDUCTION_STEPS:
        if year >= step_year:
            reduction = step_reduction
        else:
            break
    return REFERENCE_INTENSITY * (Decimal("1") - reduction)


def energy_in_scope(fuel_consumption_t: Decimal) -> Decimal:
    return fuel_consumption_t * ENERGY_PER_TONNE_MJ


def compliance_balance(ghg_intensity: Decimal, fuel_consumption_t: Decimal, year: int) -> Decimal:
    """CB = (Target - Actual) * Energie. Positiv = Surplus, negativ = Defizit (gCO2e)."""
    return (target_intensity(year) - ghg_intensity) * energy_in_scope(fuel_consumption_t)


def percent_difference(route: Route, baseline: Baseline) -> Decimal:
    return (route.ghg_intensity / baseline.ghg_intensity - Decimal("1")) * Decimal("100")


def is_compliant(route: Route) -> bool:
    return route.ghg_intensity <= target_intensity(route.year)


class FuelEUEngine:
    """Route-basierte CB-Berechnung pro Schiff und Jahr."""

    def __init__(self, route_store):
        self.route_store = route_store

    def compute(self, ship_id: str, year: int, route_id: str) -> Decimal:
        route = self.route_store.read(route_id)
        if route is None:
            raise ComplianceComputationFailed(str(RouteNotFound(route_id)))

        try:
            ghg = Decimal(str(route.ghg_intensity))
            fuel = Decimal(str(route.fuel_consumption))
        except InvalidOperation as e:
            raise ComplianceComputationFailed(
                f"ROUTE_DATA_INVALID: Route '{route_id}' carries non-numeric values."
            ) from e

        if not ghg.is_finite() or ghg < 0:
            raise ComplianceComputationFailed(f"ROUTE_DATA_INVALID: GHG intensity {ghg} for route '{route_id}'.")
        if not fuel.is_finite() or fuel <= 0:
            raise ComplianceComputationFailed(
                f"ROUTE_DATA_INVALID: Fuel consumption must be greater than zero for route '{route_id}'."
            )

        return compliance_balance(ghg, fuel, year)

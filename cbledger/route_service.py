from cbledger import engine_fueleu
from cbledger.errors import BaselineNotFound, RouteNotFound, ValidationError
from cbledger.models import Baseline, ComparisonData
from cbledger.ports import RouteStore
from cbledger.validation import require_year, to_decimal

_BASELINE_FIELDS = ("ghg_intensity", "fuel_consumption", "distance", "total_emissions")


class RouteService:
    def __init__(self, route_store: RouteStore):
        self.store = route_store

    def list_routes(self):
        return self.store.read_all()

    def set_baseline(self, route_id, year=None, **overrides) -> Baseline:
        """Markiert eine Route als Baseline; Werte aus overrides ersetzen die Routendaten."""
        route = self.store.read(route_id)
        if route is None:
            raise RouteNotFound(route_id)

        baseline = Baseline.from_route(route, year=None if year is None else require_year(year))
        for field_name in _BASELINE_FIELDS:
            value = overrides.get(field_name)
            if value is not None:
                setattr(baseline, field_name, to_decimal(value, field_name))
        if baseline.ghg_intensity <= 0:
            raise ValidationError(f"BASELINE_INVALID: ghg_intensity must be positive, got {baseline.ghg_intensity}.")
        return self.store.save_baseline(baseline)

    def _compare(self, route, baseline):
        return ComparisonData(
            baseline=baseline,
            comparison=route,
            percent_difference=engine_fueleu.percent_difference(route, baseline),
            compliance_target=engine_fueleu.target_intensity(route.year),
            is_compliant=engine_fueleu.is_compliant(route),
        )

    def _resolve_baseline(self, route, year):
        baseline = None
        if year is not None:
            baseline = self.store.read_baseline(route.route_id, year)
        if baseline is None:
            baseline = self.store.read_baseline(route.route_id, route.year)
        if baseline is None and route.is_baseline:
            baseline = Baseline.from_route(route)
        return baseline

    def get_comparison(self, route_id, year) -> ComparisonData:
        year = require_year(year)
        route = self.store.read(route_id)
        if route is None:
            raise RouteNotFound(route_id)

        baseline = self._resolve_baseline(route, year)
        if baseline is None:
            raise BaselineNotFound(
                f"BASELINE_NOT_FOUND: Route '{route_id}' has no baseline. Set this route as baseline first."
            )
        return self._compare(route, baseline)

    def get_all_comparisons(self, year=None):
        if year is not None:
            year = require_year(year)
        routes = self.store.read_all()

        baseline_route = next((r for r in routes if r.is_baseline), None)
        if baseline_route is None:
            raise BaselineNotFound("BASELINE_NOT_FOUND: No baseline route found. Set a baseline route first.")

        baseline = self._resolve_baseline(baseline_route, year)
        to_compare = [r for r in routes if year is None or r.year == year]
        return [self._compare(route, baseline) for route in to_compare]

from decimal import Decimal

import pytest

from cbledger.engine_fueleu import FuelEUEngine
from cbledger.errors import ComplianceComputationFailed, StoreUnavailable, ValidationError
from cbledger.models import Route, ShipCompliance
from cbledger.services.memory_repository import MemoryRouteStore, MemoryShipComplianceStore
from cbledger.ship_compliance_service import ShipComplianceService


class FixedCalculator:
    def __init__(self, value):
        self.value = value
        self.calls = []

    def compute(self, ship_id, year, route_id):
        self.calls.append((ship_id, year, route_id))
        if isinstance(self.value, Exception):
            raise self.value
        return self.value


def test_upsert_keeps_identity(services, add_ship):
    first = add_ship("S1", 2024, "1000")
    second = add_ship("S1", 2024, "1000")

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert len(services.ship_compliance.list_ship_compliance(2024)) == 1


def test_upsert_overwrites_value(services, add_ship):
    first = add_ship("S1", 2024, "1000")
    updated = add_ship("S1", 2024, "-42.5")

    assert updated.id == first.id
    assert updated.cb_gco2eq == Decimal("-42.5")
    assert services.ship_compliance.get_ship_compliance("S1", 2024).cb_gco2eq == Decimal("-42.5")


def test_same_ship_different_years_are_separate(services, add_ship):
    a = add_ship("S1", 2024, "1")
    b = add_ship("S1", 2025, "2")

    assert a.id != b.id
    assert [r.ship_id for r in services.ship_compliance.list_ship_compliance(2025)] == ["S1"]


def test_list_keeps_insertion_order(services, add_ship):
    for ship_id in ("S3", "S1", "S2"):
        add_ship(ship_id, 2024, "10")

    listed = services.ship_compliance.list_ship_compliance(2024)
    assert [r.ship_id for r in listed] == ["S3", "S1", "S2"]


def test_get_unknown_returns_none(services):
    assert services.ship_compliance.get_ship_compliance("ghost", 2024) is None


def test_compute_from_demo_route(seeded_services):
    record = seeded_services.ship_compliance.compute_ship_compliance("SHIP001", 2023, "R001")

    # (89.3368 - 91.5) * 2500 t * 41000 MJ/t
    assert record.cb_gco2eq == Decimal("-221728000.0000")
    assert record.route_id == "R001"
    assert record.id is not None
    stored = seeded_services.ship_compliance.get_ship_compliance("SHIP001", 2023)
    assert stored.cb_gco2eq == record.cb_gco2eq


def test_compute_uses_ship_id_as_route_when_missing(seeded_services):
    record = seeded_services.ship_compliance.compute_ship_compliance("R002", 2023, "  ")

    assert record.route_id == "R002"
    assert record.cb_gco2eq > 0


def test_compute_unknown_route_fails(seeded_services):
    with pytest.raises(ComplianceComputationFailed):
        seeded_services.ship_compliance.compute_ship_compliance("S1", 2024, "no-such-route")

    assert seeded_services.ship_compliance.get_ship_compliance("S1", 2024) is None


def test_compute_rejects_zero_fuel_route():
    routes = MemoryRouteStore([
        Route("Z1", "Tanker", "HFO", 2024, Decimal("90"), Decimal("0"), Decimal("100"), Decimal("0")),
    ])
    service = ShipComplianceService(MemoryShipComplianceStore(), FuelEUEngine(routes))
    with pytest.raises(ComplianceComputationFailed):
        service.compute_ship_compliance("S1", 2024, "Z1")


def test_calculator_crash_is_wrapped():
    store = MemoryShipComplianceStore()
    service = ShipComplianceService(store, FixedCalculator(RuntimeError("upstream down")))

    with pytest.raises(ComplianceComputationFailed) as exc:
        service.compute_ship_compliance("S1", 2024, "R1")
    assert isinstance(exc.value.__cause__, RuntimeError)
    assert store.read_all(2024) == []


def test_store_errors_keep_their_kind():
    service = ShipComplianceService(MemoryShipComplianceStore(), FixedCalculator(StoreUnavailable("db gone")))

    with pytest.raises(StoreUnavailable):
        service.compute_ship_compliance("S1", 2024, "R1")


@pytest.mark.parametrize("bad_value", [None, "not-a-number", float("nan"), True])
def test_invalid_calculator_result_fails(bad_value):
    store = MemoryShipComplianceStore()
    service = ShipComplianceService(store, FixedCalculator(bad_value))

    with pytest.raises(ComplianceComputationFailed):
        service.compute_ship_compliance("S1", 2024, "R1")
    assert store.read_all(2024) == []


def test_compute_passes_trimmed_ids_to_calculator():
    calculator = FixedCalculator(Decimal("12.5"))
    service = ShipComplianceService(MemoryShipComplianceStore(), calculator)

    record = service.compute_ship_compliance("  S1 ", "2024", " R9 ")

    assert calculator.calls == [("S1", 2024, "R9")]
    assert record.cb_gco2eq == Decimal("12.5")


def test_save_validates_identity():
    service = ShipComplianceService(MemoryShipComplianceStore(), FixedCalculator(Decimal("0")))

    with pytest.raises(ValidationError):
        service.save(ShipCompliance(ship_id="", year=2024, cb_gco2eq=Decimal("1")))
    with pytest.raises(ValidationError):
        service.compute_ship_compliance("S1", 0, "R1")


def test_save_leaves_caller_record_untouched():
    service = ShipComplianceService(MemoryShipComplianceStore(), FixedCalculator(Decimal("0")))
    record = ShipCompliance(ship_id="  S7 ", year="2024", cb_gco2eq=Decimal("42"))

    stored = service.save(record)

    assert (stored.ship_id, stored.year) == ("S7", 2024)
    assert (record.ship_id, record.year) == ("  S7 ", "2024")
    assert record.id is None

from decimal import Decimal

import pytest

from cbledger.config import Settings
from cbledger.factory import build_services
from cbledger.models import ShipCompliance


def _build(store, tmp_path, seed_demo=False):
    settings = Settings(store=store, db_path=str(tmp_path / "ledger.sqlite"), seed_demo=seed_demo)
    return build_services(settings)


@pytest.fixture(params=["memory", "sqlite"])
def services(request, tmp_path):
    return _build(request.param, tmp_path)


@pytest.fixture(params=["memory", "sqlite"])
def seeded_services(request, tmp_path):
    """Demo data: CB(2024) = 1,500,000 and ships ship-001..ship-004 for 2024."""
    return _build(request.param, tmp_path, seed_demo=True)


@pytest.fixture
def add_ship(services):
    def _add(ship_id, year, cb):
        record = ShipCompliance(ship_id=ship_id, year=year, cb_gco2eq=Decimal(cb))
        return services.ship_compliance.save(record)
    return _add

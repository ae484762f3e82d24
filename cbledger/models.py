from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional


def _plain(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# 1. Ledger-Modelle (Jahresaggregat)
@dataclass
class ComplianceBalance:
    year: int
    cb: Decimal = Decimal("0")

    @property
    def is_surplus(self) -> bool:
        return self.cb > 0

    def to_dict(self):
        return {k: _plain(v) for k, v in self.__dict__.items()}


@dataclass
class YearPosition:
    """Arbeitskopie von (cb, banked) innerhalb einer Jahres-Transaktion."""
    year: int
    cb: Decimal
    banked: Decimal


# 2. Schiffsbezogene Compliance
@dataclass
class ShipCompliance:
    ship_id: str
    year: int
    cb_gco2eq: Decimal
    route_id: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self):
        return {k: _plain(v) for k, v in self.__dict__.items()}


# 3. Pooling
@dataclass
class PoolMember:
    ship_id: str
    adjusted_cb: Decimal
    cb_before: Decimal
    cb_after: Decimal = Decimal("0")

    def to_dict(self):
        return {k: _plain(v) for k, v in self.__dict__.items()}


@dataclass
class Pool:
    pool_id: Optional[str]
    year: int
    members: List[PoolMember]
    pool_sum: Decimal
    name: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_valid(self) -> bool:
        return self.pool_sum >= 0

    def to_dict(self):
        return {k: _plain(v) for k, v in self.__dict__.items()}


# 4. Routen & Baselines
@dataclass
class Route:
    route_id: str
    vessel_type: str
    fuel_type: str
    year: int
    ghg_intensity: Decimal
    fuel_consumption: Decimal
    distance: Decimal
    total_emissions: Decimal
    is_baseline: bool = False

    def to_dict(self):
        return {k: _plain(v) for k, v in self.__dict__.items()}


@dataclass
class Baseline:
    route_id: str
    year: int
    ghg_intensity: Decimal
    fuel_consumption: Decimal
    distance: Decimal
    total_emissions: Decimal

    @classmethod
    def from_route(cls, route: Route, year: Optional[int] = None) -> "Baseline":
        return cls(
            route_id=route.route_id,
            year=route.year if year is None else year,
            ghg_intensity=route.ghg_intensity,
            fuel_consumption=route.fuel_consumption,
            distance=route.distance,
            total_emissions=route.total_emissions,
        )

    def to_dict(self):
        return {k: _plain(v) for k, v in self.__dict__.items()}


@dataclass
class ComparisonData:
    baseline: Baseline
    comparison: Route
    percent_difference: Decimal
    compliance_target: Decimal
    is_compliant: bool

    def to_dict(self):
        return {k: _plain(v) for k, v in self.__dict__.items()}

import logging
from decimal import Decimal

from cbledger.errors import MemberComplianceNotFound, NegativePoolSum, ValidationError
from cbledger.models import Pool, PoolMember, utc_now
from cbledger.ports import PoolStore, ShipComplianceStore
from cbledger.validation import require_ship_id, require_year

logger = logging.getLogger(__name__)


class PoolingService:
    """
    Bildet Pools aus Schiffen eines Jahres.

    Ablauf: Validierung -> Snapshot der Mitglieder-CBs -> Summenpruefung -> ein Write.
    Vor dem Write gibt es keinen Seiteneffekt; ein abgelehnter Pool hinterlaesst nichts.
    Nach dem Pooling erhaelt jedes Mitglied den gleichen Anteil der Poolsumme (cb_after).
    """

    def __init__(self, pool_store: PoolStore, ship_store: ShipComplianceStore):
        self.pool_store = pool_store
        self.ship_store = ship_store

    def _normalize_members(self, member_ship_ids):
        if isinstance(member_ship_ids, str) or not member_ship_ids:
            raise ValidationError("MEMBERS_INVALID: memberShipIds must be a non-empty list.")

        ship_ids = [require_ship_id(s) for s in member_ship_ids]
        seen = set()
        duplicates = []
        for ship_id in ship_ids:
            if ship_id in seen and ship_id not in duplicates:
                duplicates.append(ship_id)
            seen.add(ship_id)
        if duplicates:
            raise ValidationError(f"MEMBERS_DUPLICATE: Ships listed more than once: {duplicates}.")
        return ship_ids

    def _build_draft(self, year, member_ship_ids, name):
        year = require_year(year)
        ship_ids = self._normalize_members(member_ship_ids)
        if name is not None:
            name = str(name).strip() or None

        members = []
        for ship_id in ship_ids:
            record = self.ship_store.read(ship_id, year)
            if record is None:
                logger.warning("Pool rejected: no CB for %s in %s.", ship_id, year)
                raise MemberComplianceNotFound(ship_id, year)
            members.append(
                PoolMember(
                    ship_id=ship_id,
                    adjusted_cb=record.cb_gco2eq,
                    cb_before=record.cb_gco2eq,
                    cb_after=Decimal("0"),
                )
            )

        pool_sum = sum((m.adjusted_cb for m in members), Decimal("0"))
        if pool_sum >= 0:
            share = pool_sum / len(members)
            for member in members:
                member.cb_after = share

        return Pool(pool_id=None, year=year, members=members, pool_sum=pool_sum, name=name)

    def preview_pool(self, year, member_ship_ids, name=None) -> Pool:
        """Pool-Entwurf ohne Persistenz; Pool.is_valid zeigt, ob er gebildet werden darf."""
        return self._build_draft(year, member_ship_ids, name)

    def create_pool(self, year, member_ship_ids, name=None) -> Pool:
        draft = self._build_draft(year, member_ship_ids, name)
        if draft.pool_sum < 0:
            logger.warning("Pool rejected for %s: negative sum %s.", draft.year, draft.pool_sum)
            raise NegativePoolSum(draft.year, draft.pool_sum)

        draft.pool_id = self.pool_store.new_pool_id()
        draft.created_at = utc_now()
        stored = self.pool_store.append(draft)

        logger.info(
            "Pool %s created for %s with %d members, sum %s gCO2e.",
            stored.pool_id, stored.year, len(stored.members), stored.pool_sum,
        )
        return stored

    def list_pools(self):
        return self.pool_store.read_all()

    def get_pool(self, pool_id):
        return self.pool_store.read(pool_id)

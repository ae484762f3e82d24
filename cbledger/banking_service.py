import logging
from decimal import Decimal

from cbledger.errors import InsufficientBankedSurplus
from cbledger.models import ComplianceBalance
from cbledger.ports import BalanceLedgerStore
from cbledger.validation import require_positive_amount, require_year

logger = logging.getLogger(__name__)


class BankingService:
    """
    Jahresaggregat-Ledger: Compliance Balance (cb) und Banked Amount pro Jahr.

    Invarianten:
    - cb und banked eines Jahres werden nur gemeinsam in einer Transaktion veraendert
    - banked >= 0 nach jeder Operation
    - Apply ist strikt: mehr als gebankt wird nie angewendet
    """

    def __init__(self, ledger_store: BalanceLedgerStore):
        self.store = ledger_store

    def get_balance(self, year) -> ComplianceBalance:
        year = require_year(year)
        cb = self.store.read_balance(year)
        if cb is None:
            # Lazy Materialisierung, spaetere Updates haben eine Zeile
            self.store.ensure_year(year)
            cb = Decimal("0")
        return ComplianceBalance(year=year, cb=cb)

    def get_banked_amount(self, year) -> Decimal:
        year = require_year(year)
        banked = self.store.read_banked(year)
        return banked if banked is not None else Decimal("0")

    def bank_surplus(self, year, amount) -> None:
        year = require_year(year)
        amount = require_positive_amount(amount)

        with self.store.year_transaction(year) as position:
            position.cb -= amount
            position.banked += amount

        logger.info("Banked %s gCO2e for %s (cb=%s, banked=%s).", amount, year, position.cb, position.banked)

    def apply_banked_surplus(self, year, amount) -> None:
        year = require_year(year)
        amount = require_positive_amount(amount)

        with self.store.year_transaction(year) as position:
            if position.banked < amount:
                logger.warning(
                    "Apply rejected for %s: requested %s, banked %s.", year, amount, position.banked
                )
                raise InsufficientBankedSurplus(year, amount, position.banked)
            position.banked -= amount
            position.cb += amount

        logger.info("Applied %s gCO2e for %s (cb=%s, banked=%s).", amount, year, position.cb, position.banked)

    def can_bank(self, year) -> bool:
        return self.get_balance(year).is_surplus

    def can_apply(self, year) -> bool:
        return self.get_balance(year).cb < 0 and self.get_banked_amount(year) > 0

class LedgerError(Exception):
    """Basis aller Domain-Fehler des Compliance Ledgers."""


class ValidationError(LedgerError, ValueError):
    pass


class MemberComplianceNotFound(LedgerError):
    def __init__(self, ship_id, year):
        self.ship_id = ship_id
        self.year = year
        super().__init__(f"MEMBER_COMPLIANCE_NOT_FOUND: No compliance balance for ship '{ship_id}' in {year}.")


class NegativePoolSum(LedgerError):
    def __init__(self, year, pool_sum):
        self.year = year
        self.pool_sum = pool_sum
        super().__init__(f"NEGATIVE_POOL_SUM: Sum of member CBs for {year} is {pool_sum} gCO2e.")


class InsufficientBankedSurplus(LedgerError):
    def __init__(self, year, requested, available):
        self.year = year
        self.requested = requested
        self.available = available
        super().__init__(
            f"INSUFFICIENT_BANKED_SURPLUS: Requested {requested} gCO2e for {year}, only {available} banked."
        )


class ComplianceComputationFailed(LedgerError):
    pass


class StoreUnavailable(LedgerError):
    """Backing store nicht erreichbar oder Timeout. Aufrufer darf wiederholen."""


class RouteNotFound(LedgerError):
    def __init__(self, route_id):
        self.route_id = route_id
        super().__init__(f"ROUTE_NOT_FOUND: Route '{route_id}' does not exist.")


class BaselineNotFound(LedgerError):
    pass

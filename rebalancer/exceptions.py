class RebalancerError(Exception):
    """Base exception for all rebalancer related errors."""

    pass


class AllocationError(RebalancerError):
    """Raised when allocation validation fails (e.g., sum != 100%)."""

    pass


class ReconciliationError(RebalancerError):
    """Raised when an account partition does not reconcile with its actual value."""

    pass


class ExportFormatError(RebalancerError):
    """Raised when a brokerage export cannot be parsed."""

    pass


class DistributionTableError(RebalancerError):
    """Raised when the IRS distribution table is missing or malformed."""

    pass


class PricingError(RebalancerError):
    """Raised when there is an issue with pricing data (e.g., missing price)."""

    pass


class InvalidSymbolError(RuntimeError):
    """Raised when a value is keyed by the empty symbol.

    Not a RebalancerError: it means an object was used before it was fully
    built, which is a programming error rather than bad input.
    """

"""
Domain-specific errors for the pricing bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.

Two expected conditions are deliberately NOT errors:
    - a single missing feature value is represented as ``None``;
    - a prediction with no actual observation yet is simply deferred.
"""


class PricingDomainError(Exception):
    """Base error for all pricing domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ConfigurationError(PricingDomainError):
    """Raised when no usable published ModelParameters are available."""

    def __init__(self, reason: str = "no published model parameters") -> None:
        super().__init__(f"Configuration error: {reason}")
        self.reason = reason


class InsufficientHistoryError(PricingDomainError):
    """Raised when the history window is empty or too short for a horizon."""

    def __init__(self, available: int, required: int, detail: str = "") -> None:
        suffix = f" ({detail})" if detail else ""
        super().__init__(
            f"Insufficient history: {available} records available, "
            f"{required} required{suffix}"
        )
        self.available = available
        self.required = required
        self.detail = detail


class InvalidHorizonError(PricingDomainError):
    """Raised when a forecast horizon is outside the configured set."""

    def __init__(self, horizon: int, allowed: tuple[int, ...]) -> None:
        super().__init__(
            f"Invalid forecast horizon: {horizon}. Must be one of {list(allowed)}."
        )
        self.horizon = horizon
        self.allowed = allowed


class PersistenceError(PricingDomainError):
    """Raised when an atomic batch write fails and nothing was committed."""

    def __init__(self, operation: str, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Persistence failed during {operation}{detail}")
        self.operation = operation
        self.reason = reason

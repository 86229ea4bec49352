# backend/app/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
app.main maps them to HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── NotFoundError
    │   ├── PortfolioNotFoundError
    │   └── AssetNotFoundError
    ├── PriceUnavailableError
    ├── MarketDataError
    │   ├── ProviderUnavailableError
    │   ├── SymbolNotFoundError
    │   └── RateLimitError
    ├── AggregationInconsistencyError
    └── StorageUnavailableError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when a price source's breaker is open

Only ValidationError, NotFoundError and StorageUnavailableError reach the
HTTP layer. MarketDataError subclasses stay inside the price sources and
PriceUnavailableError is a soft failure handled by the caller.
"""

from decimal import Decimal


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails outside of Pydantic request parsing.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Repositories signal absence with None; the service raises these for the
    caller that asked for one specific resource.

    Attributes:
        resource_type: Type of resource (e.g., "Portfolio", "Asset")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class PortfolioNotFoundError(NotFoundError):
    def __init__(self, portfolio_id: str) -> None:
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Portfolio {portfolio_id} not found",
            resource_type="Portfolio",
            resource_id=portfolio_id,
        )


class AssetNotFoundError(NotFoundError):
    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(
            f"Asset {asset_id} not found",
            resource_type="Asset",
            resource_id=asset_id,
        )


# =============================================================================
# PRICING ERRORS
# =============================================================================


class PriceUnavailableError(ServiceError):
    """
    No source, networked or static, produced a price for a symbol.

    Soft failure: the asset keeps its previous valuation.
    """

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"No price available for '{symbol}'")


class MarketDataError(ServiceError):
    """
    Base exception for price source failures.

    Attributes:
        provider: Name of the source that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when a price source is temporarily unavailable.

    Examples:
    - Network timeout
    - Server errors (500, 502, 503)
    - Malformed response body

    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class SymbolNotFoundError(MarketDataError):
    """
    Raised when a source does not list the symbol.

    This is NOT a retryable error.
    """

    def __init__(self, symbol: str, provider: str) -> None:
        message = f"Symbol '{symbol}' not found by {provider}"
        super().__init__(message, provider=provider)
        self.symbol = symbol


class RateLimitError(MarketDataError):
    """
    Raised when the source's rate limit has been exceeded.

    This is a retryable error (with backoff).

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


# =============================================================================
# AGGREGATION ERRORS
# =============================================================================


class AggregationInconsistencyError(ServiceError):
    """
    Stored portfolio totals disagree with the fold of its assets.

    Attributes:
        portfolio_id: Portfolio whose totals diverged
        mismatches: field name -> (stored, expected)
    """

    def __init__(
            self,
            portfolio_id: str,
            mismatches: dict[str, tuple[Decimal, Decimal]],
    ) -> None:
        self.portfolio_id = portfolio_id
        self.mismatches = mismatches
        fields = ", ".join(
            f"{name} stored={stored} expected={expected}"
            for name, (stored, expected) in mismatches.items()
        )
        super().__init__(f"Portfolio {portfolio_id} totals are inconsistent: {fields}")


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageUnavailableError(ServiceError):
    """
    The persistence layer failed. Fatal for the current request.

    Attributes:
        operation: Repository operation that failed
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage unavailable during {operation}: {reason}")

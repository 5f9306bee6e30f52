"""
Domain Errors

Architectural Intent:
- Single exception hierarchy for every failure the reconcilers can surface
- Each error carries the operation, resource id and provider detail so an
  operator can diagnose a failure from the message alone
- Retry policy is encoded in the type: only CapacityUnavailableError is ever
  retried (internally, by the capacity prober); everything else surfaces as-is
"""

from typing import Optional


class LambdaformError(Exception):
    """Base class for all lambdaform errors."""

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.resource_id = resource_id
        self.detail = detail

    def __str__(self) -> str:
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.resource_id:
            context.append(f"id={self.resource_id}")
        text = self.message
        if context:
            text = f"{text} [{', '.join(context)}]"
        if self.detail:
            text = f"{text}: {self.detail}"
        return text


class ConfigurationError(LambdaformError):
    """Unknown instance type, missing credential or malformed desired spec."""


class CapacityUnavailableError(LambdaformError):
    """No capacity appeared before the capacity window closed."""

    def __init__(self, message: str, *, attempts: int = 0, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts


class TransportError(LambdaformError):
    """Network failure, non-200 status or empty success envelope."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        **kwargs,
    ) -> None:
        if body and "detail" not in kwargs:
            kwargs["detail"] = body
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body


class ResourceNotFoundError(LambdaformError):
    """A looked-up resource does not exist at the provider."""


class DriftError(ResourceNotFoundError):
    """A tracked resource is missing from the provider's authoritative list."""


class UnsupportedOperationError(LambdaformError):
    """The operation is never supported (in-place update)."""

"""
esprovisioner Errors: Failure Taxonomy
======================================

Every failure the provisioner reports is a ``ProvisionError`` subclass:

    ClusterConnectionError  cluster unreachable or timed out (retryable)
    AuthError               credentials rejected, 401/403 (never retried)
    ValidationError         request rejected as malformed, 400 (never retried)
    ConflictError           resource already exists (caller decides)
    NotFoundError           resource absent on a read
    PartialFailure          multi-step operation stopped half way

``translate`` maps exceptions raised by the ``elasticsearch`` client onto
this taxonomy, keeping the cluster's error body for diagnostics.
"""

from typing import Any, Optional

from elasticsearch import ApiError, TransportError
from elasticsearch import ConnectionError as TransportConnectionError
from elasticsearch import ConnectionTimeout


class ProvisionError(Exception):
    """Base class for provisioning failures."""

    retryable = False

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Any = None
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} (HTTP {self.status})"
        return self.message


class ClusterConnectionError(ProvisionError):
    retryable = True


class AuthError(ProvisionError):
    pass


class ValidationError(ProvisionError):
    pass


class ConflictError(ProvisionError):
    pass


class NotFoundError(ProvisionError):
    pass


class PartialFailure(ProvisionError):
    pass


def error_type(body: Any) -> str:
    """Return the ``error.type`` of a cluster error body, or ""."""
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return str(err.get("type", ""))
    return ""


def error_reason(body: Any) -> str:
    """Return the ``error.reason`` of a cluster error body, or ""."""
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return str(err.get("reason", ""))
        if isinstance(err, str):
            return err
    return ""


def translate(exc: Exception, context: str) -> ProvisionError:
    """
    Map a client exception onto the provisioning taxonomy.

    Args:
        exc: Exception raised by the elasticsearch client
        context: Short description of the failed call (e.g. "create index 'x'")

    Returns:
        ProvisionError subclass instance (not raised)
    """
    if isinstance(exc, ProvisionError):
        return exc

    if isinstance(exc, (TransportConnectionError, ConnectionTimeout)):
        return ClusterConnectionError(f"{context}: cluster unreachable ({exc})")

    if isinstance(exc, ApiError):
        status = exc.meta.status
        body = exc.body
        reason = error_reason(body) or exc.message
        message = f"{context}: {reason}"

        if status in (401, 403):
            return AuthError(message, status=status, body=body)
        if status == 404:
            return NotFoundError(message, status=status, body=body)
        if status == 409 or error_type(body) == "resource_already_exists_exception":
            return ConflictError(message, status=status, body=body)
        if status == 400:
            return ValidationError(message, status=status, body=body)
        return ProvisionError(message, status=status, body=body)

    if isinstance(exc, TransportError):
        return ProvisionError(f"{context}: {exc}")

    raise exc

"""Exceptions for flow-kms-signer.

This module defines the exception hierarchy for the library. Transport errors
raised by the remote key-management client are not wrapped: they reach the
caller unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class KmsSignerError(Exception):
    """Base exception for all flow-kms-signer errors.

    All library-specific exceptions inherit from this class, allowing
    callers to catch every signing failure with a single except clause.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize signer error.

        Args:
            message: Error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of error."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class IntegrityErrorKind(str, Enum):
    """Direction in which in-transit corruption was detected."""

    REQUEST_CORRUPTED = "request_corrupted"
    RESPONSE_CORRUPTED = "response_corrupted"


class IntegrityError(KmsSignerError):
    """Error indicating a failed end-to-end integrity check.

    Raised when the remote service answered about a different resource than
    requested, could not confirm the digest checksum, or returned data whose
    CRC32-C does not match the checksum it sent alongside.
    """

    def __init__(
        self,
        message: str,
        kind: IntegrityErrorKind,
        operation: str | None = None,
    ) -> None:
        """Initialize integrity error.

        Args:
            message: Error message
            kind: Whether the request or the response was corrupted
            operation: Remote operation that failed the check
        """
        details: dict[str, Any] = {"kind": kind.value}
        if operation:
            details["operation"] = operation

        super().__init__(message, details)
        self.kind = kind
        self.operation = operation

    @property
    def request_corrupted(self) -> bool:
        """Whether the corruption was detected on the request side."""
        return self.kind is IntegrityErrorKind.REQUEST_CORRUPTED

    @property
    def response_corrupted(self) -> bool:
        """Whether the corruption was detected on the response side."""
        return self.kind is IntegrityErrorKind.RESPONSE_CORRUPTED


class Asn1DecodeError(KmsSignerError):
    """Error raised when a public key or signature cannot be decoded.

    Covers input that is not strict DER, keys that are not on the expected
    curve, and signature integers too wide for the curve.
    """


class InvalidMessageError(KmsSignerError):
    """Error raised when a message to sign cannot be decoded."""


class ValidationError(KmsSignerError):
    """Error related to key reference or configuration validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize validation error.

        Args:
            message: Error message
            field: Name of the field that failed validation
        """
        super().__init__(message, {"field": field} if field else None)
        self.field = field

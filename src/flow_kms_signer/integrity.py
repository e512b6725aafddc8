"""End-to-end integrity checks for remote key-management calls.

Every payload exchanged with the remote service carries a CRC32-C tag. The
tag only detects in-transit corruption; it does not authenticate anything.
"""

from __future__ import annotations

import google_crc32c
from loguru import logger

from flow_kms_signer.exceptions import IntegrityError, IntegrityErrorKind
from flow_kms_signer.models import SignDigestResponse


def checksum(data: bytes) -> int:
    """Compute the CRC32-C (Castagnoli) checksum of a payload.

    Args:
        data: Bytes to checksum

    Returns:
        Unsigned 32-bit checksum
    """
    return int(google_crc32c.value(bytes(data)))


def verify(
    expected_name: str,
    actual_name: str,
    data: bytes,
    expected_checksum: int | None,
    operation: str = "GetPublicKey",
) -> None:
    """Check that a response refers to the requested resource and is intact.

    Args:
        expected_name: Resource path the request was sent for
        actual_name: Resource path echoed by the remote service
        data: Payload returned by the remote service
        expected_checksum: Checksum the remote service sent with the payload
        operation: Remote operation name used in error messages

    Raises:
        IntegrityError: REQUEST_CORRUPTED on a name mismatch,
            RESPONSE_CORRUPTED on a checksum mismatch
    """
    if actual_name != expected_name:
        logger.bind(key_path=expected_name).warning(
            f"{operation}: remote service answered for {actual_name!r}"
        )
        raise IntegrityError(
            f"{operation}: request corrupted in-transit",
            kind=IntegrityErrorKind.REQUEST_CORRUPTED,
            operation=operation,
        )

    if expected_checksum is None or checksum(data) != int(expected_checksum):
        logger.bind(key_path=expected_name).warning(f"{operation}: checksum mismatch")
        raise IntegrityError(
            f"{operation}: response corrupted in-transit",
            kind=IntegrityErrorKind.RESPONSE_CORRUPTED,
            operation=operation,
        )


def verify_sign_response(expected_name: str, response: SignDigestResponse) -> None:
    """Run the signing-path checks on a remote signing response.

    The order is fixed: resource name, digest confirmation, then the
    signature checksum.

    Raises:
        IntegrityError: If any of the checks fails
    """
    operation = "AsymmetricSign"
    if response.name != expected_name:
        logger.bind(key_path=expected_name).warning(
            f"{operation}: remote service answered for {response.name!r}"
        )
        raise IntegrityError(
            f"{operation}: request corrupted in-transit",
            kind=IntegrityErrorKind.REQUEST_CORRUPTED,
            operation=operation,
        )

    if not response.verified_digest_checksum:
        logger.bind(key_path=expected_name).warning(
            f"{operation}: remote service did not verify the digest checksum"
        )
        raise IntegrityError(
            f"{operation}: request corrupted in-transit",
            kind=IntegrityErrorKind.REQUEST_CORRUPTED,
            operation=operation,
        )

    verify(
        expected_name,
        response.name,
        response.signature,
        response.signature_checksum,
        operation,
    )

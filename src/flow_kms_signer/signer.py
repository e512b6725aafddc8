"""Remote ECDSA signing for Flow transactions.

This module hashes transaction messages, has the remote key-management
service sign the digest, checks integrity in both directions and converts
the DER results into the raw fixed-width form Flow verifies.
"""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes
from loguru import logger

from flow_kms_signer import asn1, integrity
from flow_kms_signer.exceptions import InvalidMessageError
from flow_kms_signer.models import KeyReference
from flow_kms_signer.service import RemoteSigningService


def hash_message(message: str | bytes) -> bytes:
    """Hash a transaction message with SHA3-256.

    Args:
        message: Hex-encoded message string, or the already decoded bytes

    Returns:
        32-byte digest

    Raises:
        InvalidMessageError: If a string message is not valid hex
    """
    if isinstance(message, str):
        try:
            payload = bytes.fromhex(message)
        except ValueError as e:
            raise InvalidMessageError(f"Message is not valid hex: {e}") from e
    else:
        payload = bytes(message)

    digest = hashes.Hash(hashes.SHA3_256())
    digest.update(payload)
    return digest.finalize()


class Signer:
    """Signs messages with one remote key version.

    All state is fixed at construction, so a single instance may serve any
    number of concurrent ``sign`` calls.
    """

    def __init__(
        self,
        key_reference: KeyReference,
        service: RemoteSigningService,
        curve_byte_width: int = asn1.DEFAULT_CURVE_BYTE_WIDTH,
    ) -> None:
        """Initialize signer.

        Args:
            key_reference: Remote key version to sign with
            service: Remote signing service client
            curve_byte_width: Byte width of one coordinate of the key's curve
        """
        self._key_reference = key_reference
        self._path = key_reference.resource_path
        self._service = service
        self._curve_byte_width = curve_byte_width

    @property
    def key_path(self) -> str:
        """Resource path of the key version."""
        return self._path

    @property
    def curve_byte_width(self) -> int:
        """Byte width of one curve coordinate."""
        return self._curve_byte_width

    async def get_public_key(self) -> bytes:
        """Fetch the public key and return it as raw ``X || Y`` bytes.

        Raises:
            IntegrityError: If the response fails an integrity check
            Asn1DecodeError: If the key cannot be decoded
        """
        response = await self._service.fetch_public_key(self._path)
        integrity.verify(
            self._path,
            response.name,
            response.encoded_key,
            response.encoded_key_checksum,
            operation="GetPublicKey",
        )

        public_key = asn1.decode_public_key(response.encoded_key, self._curve_byte_width)
        logger.bind(key_path=self._path).debug("Fetched public key")
        return public_key

    async def get_public_key_hex(self) -> str:
        """Fetch the public key as the hex string Flow account keys use."""
        return (await self.get_public_key()).hex()

    async def sign(self, message: str | bytes) -> bytes:
        """Sign a message and return the raw ``r || s`` signature.

        Args:
            message: Hex-encoded message string, or the decoded bytes

        Raises:
            InvalidMessageError: If the message cannot be decoded
            IntegrityError: If the exchange fails an integrity check
            Asn1DecodeError: If the signature cannot be decoded
        """
        digest = hash_message(message)
        digest_checksum = integrity.checksum(digest)

        log = logger.bind(key_path=self._path)
        log.debug(f"Requesting signature for digest with crc32c {digest_checksum}")

        response = await self._service.sign_digest(self._path, digest, digest_checksum)
        integrity.verify_sign_response(self._path, response)

        signature = asn1.decode_signature(response.signature, self._curve_byte_width)
        log.debug("Signature received and normalized")
        return signature

    async def sign_hex(self, message: str | bytes) -> str:
        """Sign a message and return the signature as lowercase hex."""
        return (await self.sign(message)).hex()

"""Remote key-management service interface and its Google Cloud KMS binding.

The signer only depends on :class:`RemoteSigningService`. Everything that
touches the Cloud KMS client library lives in :class:`GcpKmsSigningService`.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Protocol, runtime_checkable

from google.api_core.client_options import ClientOptions
from google.cloud import kms_v1
from loguru import logger

from flow_kms_signer.models import PublicKeyResponse, SignDigestResponse


@runtime_checkable
class RemoteSigningService(Protocol):
    """Abstract interface for a remote asymmetric signing service."""

    @abstractmethod
    async def fetch_public_key(self, path: str) -> PublicKeyResponse:
        """Fetch the public key of a key version.

        Args:
            path: Crypto key version resource path

        Returns:
            Encoded public key with its checksum
        """
        ...

    @abstractmethod
    async def sign_digest(
        self, path: str, digest: bytes, digest_checksum: int
    ) -> SignDigestResponse:
        """Sign a precomputed digest.

        Args:
            path: Crypto key version resource path
            digest: 32-byte message digest
            digest_checksum: CRC32-C of ``digest``

        Returns:
            DER signature with its checksum and the digest verification flag
        """
        ...


class GcpKmsSigningService:
    """RemoteSigningService backed by Google Cloud KMS.

    The digest is sent in the ``sha256`` field of the request. Cloud KMS
    signs the 32 bytes it receives without rehashing them, which is what
    lets a SHA3-256 digest be signed with an ``EC_SIGN_*_SHA256`` key.
    """

    def __init__(
        self,
        client: kms_v1.KeyManagementServiceAsyncClient | None = None,
        client_options: ClientOptions | dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize Cloud KMS signing service.

        Args:
            client: Existing async KMS client (created lazily when omitted)
            client_options: Options for the client created lazily
            timeout: Optional per-call timeout in seconds
        """
        self._client = client
        self._client_options = client_options
        self._timeout = timeout

    @property
    def client(self) -> kms_v1.KeyManagementServiceAsyncClient:
        """Async KMS client, created on first use."""
        if self._client is None:
            logger.debug("Creating Cloud KMS async client")
            self._client = kms_v1.KeyManagementServiceAsyncClient(
                client_options=self._client_options
            )
        return self._client

    def _call_kwargs(self) -> dict[str, Any]:
        return {"timeout": self._timeout} if self._timeout is not None else {}

    async def fetch_public_key(self, path: str) -> PublicKeyResponse:
        """Call ``GetPublicKey`` for a key version."""
        response = await self.client.get_public_key(request={"name": path}, **self._call_kwargs())
        return PublicKeyResponse(
            name=response.name,
            encoded_key=response.pem.encode("utf-8"),
            encoded_key_checksum=response.pem_crc32c,
        )

    async def sign_digest(
        self, path: str, digest: bytes, digest_checksum: int
    ) -> SignDigestResponse:
        """Call ``AsymmetricSign`` for a precomputed digest."""
        response = await self.client.asymmetric_sign(
            request={
                "name": path,
                "digest": {"sha256": digest},
                "digest_crc32c": digest_checksum,
            },
            **self._call_kwargs(),
        )
        return SignDigestResponse(
            name=response.name,
            verified_digest_checksum=response.verified_digest_crc32c,
            signature=response.signature,
            signature_checksum=response.signature_crc32c,
        )

    async def close(self) -> None:
        """Close the underlying transport, if a client was created."""
        if self._client is not None:
            await self._client.transport.close()
            self._client = None

    async def __aenter__(self) -> GcpKmsSigningService:
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()

"""Flow authorization capabilities backed by a remote KMS key.

``KmsAuthorizer.authorize(address, key_index)`` returns an
:class:`Authorization`. The transaction layer calls it once per signing role
(proposer, payer, authorizer) and gets back a fresh
:class:`AuthorizationCapability` whose ``signing_function`` produces the
signature for that role.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from google.api_core.client_options import ClientOptions
from loguru import logger

from flow_kms_signer.asn1 import DEFAULT_CURVE_BYTE_WIDTH
from flow_kms_signer.config import Settings
from flow_kms_signer.models import KeyReference, SigningResult
from flow_kms_signer.service import GcpKmsSigningService, RemoteSigningService
from flow_kms_signer.signer import Signer

ADDRESS_PREFIX = "0x"


def sans_prefix(address: str) -> str:
    """Return the address without its ``0x`` prefix."""
    if address.startswith(ADDRESS_PREFIX):
        return address[len(ADDRESS_PREFIX) :]
    return address


def with_prefix(address: str) -> str:
    """Return the address with a single ``0x`` prefix."""
    return ADDRESS_PREFIX + sans_prefix(address)


@dataclass(frozen=True)
class AuthorizationCapability:
    """One signing role of one account key within a transaction."""

    address: str
    key_index: int
    signer: Signer = field(repr=False, compare=False)
    envelope: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def temp_id(self) -> str:
        """Identifier the transaction layer uses to merge identical roles."""
        return f"{self.address}-{self.key_index}"

    @property
    def addr(self) -> str:
        """Address without prefix, as compared on chain."""
        return sans_prefix(self.address)

    @property
    def key_id(self) -> int:
        return self.key_index

    async def signing_function(self, message: str | bytes | Mapping[str, Any]) -> SigningResult:
        """Sign a transaction message for this role.

        Args:
            message: Hex message, raw bytes, or a mapping carrying the
                message under ``"message"``

        Returns:
            Prefixed address, key index and raw signature
        """
        if isinstance(message, Mapping):
            message = message["message"]

        signature = await self.signer.sign(message)
        return SigningResult(
            addr=with_prefix(self.address), key_id=self.key_index, signature=signature
        )

    sign = signing_function

    def to_envelope(self) -> dict[str, Any]:
        """Return the account mapping consumed by FCL-style transaction builders."""
        return {
            **self.envelope,
            "tempId": self.temp_id,
            "addr": self.addr,
            "keyId": self.key_id,
            "resolve": None,
            "signingFunction": self.signing_function,
        }


@dataclass(frozen=True)
class Authorization:
    """Authorization bound to one account address and key index."""

    address: str
    key_index: int
    signer: Signer = field(repr=False, compare=False)

    def __call__(
        self, partial_envelope: Mapping[str, Any] | None = None
    ) -> AuthorizationCapability:
        """Build a capability for one signing role.

        Args:
            partial_envelope: Fields already resolved by the transaction layer
        """
        return AuthorizationCapability(
            address=self.address,
            key_index=self.key_index,
            signer=self.signer,
            envelope=dict(partial_envelope or {}),
        )


class KmsAuthorizer:
    """Builds Flow authorizations for an account key held in Cloud KMS.

    Example:
        authorizer = KmsAuthorizer(KeyReference(...))
        authorization = authorizer.authorize("0x179b6b1cb6755e31", 0)
        capability = authorization()
        result = await capability.signing_function(message_hex)
    """

    def __init__(
        self,
        key_reference: KeyReference,
        service: RemoteSigningService | None = None,
        curve_byte_width: int = DEFAULT_CURVE_BYTE_WIDTH,
        client_options: ClientOptions | dict[str, Any] | None = None,
    ) -> None:
        """Initialize authorizer.

        Args:
            key_reference: Remote key version used for every signature
            service: Remote signing service (Cloud KMS when omitted)
            curve_byte_width: Byte width of one coordinate of the key's curve
            client_options: Cloud KMS client options, used when ``service`` is omitted
        """
        if service is None:
            service = GcpKmsSigningService(client_options=client_options)

        self._service = service
        self._signer = Signer(key_reference, service, curve_byte_width)

    @classmethod
    def from_settings(cls, settings: Settings) -> KmsAuthorizer:
        """Create an authorizer from configuration."""
        client_options = None
        if settings.client.api_endpoint:
            client_options = {"api_endpoint": settings.client.api_endpoint}

        service = GcpKmsSigningService(
            client_options=client_options,
            timeout=settings.client.timeout,
        )
        return cls(
            settings.key.key_reference(),
            service=service,
            curve_byte_width=settings.key.curve_byte_width,
        )

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def service(self) -> RemoteSigningService:
        return self._service

    async def get_public_key(self) -> bytes:
        """Fetch the raw public key of the signing key."""
        return await self._signer.get_public_key()

    async def get_public_key_hex(self) -> str:
        """Fetch the public key in the hex form used to register Flow account keys."""
        return await self._signer.get_public_key_hex()

    def authorize(self, address: str, key_index: int | str) -> Authorization:
        """Bind an account address and key index to this signer.

        Args:
            address: Flow account address, with or without ``0x``
            key_index: Index of the key on the account

        Returns:
            Authorization producing one capability per signing role
        """
        logger.bind(key_path=self._signer.key_path, address=address).debug(
            f"Creating authorization for key index {key_index}"
        )
        return Authorization(address=address, key_index=int(key_index), signer=self._signer)

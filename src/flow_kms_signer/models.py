"""Pydantic models for flow-kms-signer.

This module defines the value objects exchanged between the signer, the
remote key-management service and the transaction layer.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from flow_kms_signer.exceptions import ValidationError

_RESOURCE_PATH_RE = re.compile(
    r"^projects/(?P<project_id>[^/]+)"
    r"/locations/(?P<location_id>[^/]+)"
    r"/keyRings/(?P<key_ring_id>[^/]+)"
    r"/cryptoKeys/(?P<key_id>[^/]+)"
    r"/cryptoKeyVersions/(?P<version_id>[^/]+)$"
)


class KeyReference(BaseModel):
    """Immutable reference to one version of a remote asymmetric key.

    The resource path is composed once, when the reference is built, and
    reused for every remote call.
    """

    model_config = ConfigDict(frozen=True)

    project_id: str = Field(..., min_length=1)
    location_id: str = Field(..., min_length=1)
    key_ring_id: str = Field(..., min_length=1)
    key_id: str = Field(..., min_length=1)
    version_id: str = Field(..., min_length=1)

    _resource_path: str = PrivateAttr(default="")

    def model_post_init(self, __context: Any) -> None:
        """Resolve the resource path."""
        self._resource_path = (
            f"projects/{self.project_id}"
            f"/locations/{self.location_id}"
            f"/keyRings/{self.key_ring_id}"
            f"/cryptoKeys/{self.key_id}"
            f"/cryptoKeyVersions/{self.version_id}"
        )

    @property
    def resource_path(self) -> str:
        """Opaque crypto key version path used on every remote call."""
        return self._resource_path

    def model_copy(
        self, *, update: Mapping[str, Any] | None = None, deep: bool = False
    ) -> KeyReference:
        """Copy the reference, rebuilding it so the path matches the new fields."""
        return type(self)(**{**self.model_dump(), **(update or {})})

    @classmethod
    def from_resource_path(cls, path: str) -> KeyReference:
        """Build a reference from a full crypto key version path.

        Args:
            path: Path of the form
                ``projects/P/locations/L/keyRings/R/cryptoKeys/K/cryptoKeyVersions/V``

        Returns:
            Equivalent KeyReference

        Raises:
            ValidationError: If the path does not have the expected shape
        """
        match = _RESOURCE_PATH_RE.match(path.strip())
        if match is None:
            raise ValidationError(
                f"Not a crypto key version path: {path!r}", field="resource_path"
            )
        return cls(**match.groupdict())

    def __str__(self) -> str:
        return self._resource_path


class PublicKeyResponse(BaseModel):
    """Public key as returned by the remote service."""

    model_config = ConfigDict(frozen=True)

    name: str
    encoded_key: bytes
    encoded_key_checksum: int | None = None


class SignDigestResponse(BaseModel):
    """Result of a remote digest-signing call."""

    model_config = ConfigDict(frozen=True)

    name: str
    verified_digest_checksum: bool = False
    signature: bytes
    signature_checksum: int | None = None


class SigningResult(BaseModel):
    """Signature produced for one transaction-signing role."""

    model_config = ConfigDict(frozen=True)

    addr: str
    key_id: int
    signature: bytes

    @property
    def signature_hex(self) -> str:
        """Signature as lowercase hex, the form Flow envelopes carry."""
        return self.signature.hex()

    def as_dict(self) -> dict[str, Any]:
        """Return the mapping shape expected by FCL-style signing functions."""
        return {"addr": self.addr, "keyId": self.key_id, "signature": self.signature_hex}

"""Pytest configuration and fixtures for flow-kms-signer tests."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, utils
from flow_kms_signer.integrity import checksum
from flow_kms_signer.models import KeyReference, PublicKeyResponse, SignDigestResponse

# Deterministic P-256 scalar so failures are reproducible
TEST_PRIVATE_VALUE = 0x6B3A5F5C1E2D4F9A8B7C6D5E4F3A2B1C0D9E8F7A6B5C4D3E2F1A0B9C8D7E6F5A


def verify_raw_signature(
    private_key: ec.EllipticCurvePrivateKey, digest: bytes, raw: bytes
) -> None:
    """Verify a raw r || s signature over a prehashed digest."""
    r = int.from_bytes(raw[:32], "big")
    s = int.from_bytes(raw[32:], "big")
    private_key.public_key().verify(
        utils.encode_dss_signature(r, s),
        digest,
        ec.ECDSA(utils.Prehashed(hashes.SHA256())),
    )


@dataclass
class FakeSigningService:
    """In-memory RemoteSigningService signing with a local P-256 key."""

    private_key: ec.EllipticCurvePrivateKey
    name_override: str | None = None
    verified_digest_checksum: bool = True
    tamper_signature: bool = False
    tamper_public_key: bool = False
    signature_override: bytes | None = None
    public_key_override: bytes | None = None
    sign_calls: list[tuple[str, bytes, int]] = field(default_factory=list)
    fetch_calls: list[str] = field(default_factory=list)

    async def fetch_public_key(self, path: str) -> PublicKeyResponse:
        self.fetch_calls.append(path)
        encoded = self.public_key_override or self.private_key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        key_checksum = checksum(encoded)
        if self.tamper_public_key:
            encoded = encoded[:-2] + b"X\n"
        return PublicKeyResponse(
            name=self.name_override or path,
            encoded_key=encoded,
            encoded_key_checksum=key_checksum,
        )

    async def sign_digest(self, path: str, digest: bytes, digest_checksum: int) -> SignDigestResponse:
        self.sign_calls.append((path, digest, digest_checksum))
        if self.signature_override is not None:
            signature = self.signature_override
        else:
            signature = self.private_key.sign(digest, ec.ECDSA(utils.Prehashed(hashes.SHA256())))
        signature_checksum = checksum(signature)
        if self.tamper_signature:
            signature = bytes([signature[0] ^ 0x01]) + signature[1:]
        return SignDigestResponse(
            name=self.name_override or path,
            verified_digest_checksum=self.verified_digest_checksum,
            signature=signature,
            signature_checksum=signature_checksum,
        )


@pytest.fixture
def key_reference() -> KeyReference:
    """Test key reference."""
    return KeyReference(
        project_id="my-project-id",
        location_id="global",
        key_ring_id="flow",
        key_id="flow-minter-key",
        version_id="1",
    )


@pytest.fixture
def key_path(key_reference: KeyReference) -> str:
    """Resource path of the test key."""
    return key_reference.resource_path


@pytest.fixture
def private_key() -> ec.EllipticCurvePrivateKey:
    """Deterministic P-256 private key."""
    return ec.derive_private_key(TEST_PRIVATE_VALUE, ec.SECP256R1())


@pytest.fixture
def raw_public_key(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    """Expected raw X || Y public key of the test key."""
    point = private_key.public_key().public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )
    return point[1:]


@pytest.fixture
def fake_service(private_key: ec.EllipticCurvePrivateKey) -> FakeSigningService:
    """Remote signing service double backed by the test key."""
    return FakeSigningService(private_key=private_key)


@pytest.fixture
def message_hex() -> str:
    """Hex-encoded transaction message."""
    return b"FLOW-V0.0-transaction".hex() + "f8" + "ab" * 40

"""Unit tests for Flow authorization capabilities."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from flow_kms_signer.authorizer import (
    Authorization,
    AuthorizationCapability,
    KmsAuthorizer,
    sans_prefix,
    with_prefix,
)
from flow_kms_signer.config import ClientSettings, KeySettings, Settings
from flow_kms_signer.exceptions import IntegrityError
from flow_kms_signer.models import KeyReference, SigningResult
from flow_kms_signer.service import GcpKmsSigningService, RemoteSigningService
from flow_kms_signer.signer import hash_message

from tests.conftest import FakeSigningService, verify_raw_signature

ADDRESS = "0x179b6b1cb6755e31"


class TestAddressHelpers:
    """Tests for address prefix handling."""

    @pytest.mark.parametrize(
        ("address", "expected"),
        [("0x179b6b1cb6755e31", "179b6b1cb6755e31"), ("179b6b1cb6755e31", "179b6b1cb6755e31")],
    )
    def test_sans_prefix(self, address: str, expected: str) -> None:
        """Test stripping the 0x prefix."""
        assert sans_prefix(address) == expected

    @pytest.mark.parametrize(
        ("address", "expected"),
        [("0x179b6b1cb6755e31", "0x179b6b1cb6755e31"), ("179b6b1cb6755e31", "0x179b6b1cb6755e31")],
    )
    def test_with_prefix(self, address: str, expected: str) -> None:
        """Test adding the 0x prefix exactly once."""
        assert with_prefix(address) == expected


class TestAuthorize:
    """Tests for KmsAuthorizer.authorize and the capabilities it builds."""

    def test_temp_id(self, key_reference: KeyReference, fake_service: FakeSigningService) -> None:
        """Test that tempId joins the address as given and the key index."""
        authorizer = KmsAuthorizer(key_reference, service=fake_service)

        capability = authorizer.authorize("0xABC", 2)()

        assert capability.temp_id == "0xABC-2"

    def test_capability_fields(
        self, key_reference: KeyReference, fake_service: FakeSigningService
    ) -> None:
        """Test normalized address and numeric key id."""
        authorizer = KmsAuthorizer(key_reference, service=fake_service)

        capability = authorizer.authorize(ADDRESS, "3")()

        assert isinstance(capability, AuthorizationCapability)
        assert capability.addr == "179b6b1cb6755e31"
        assert capability.key_id == 3
        assert capability.signer is authorizer.signer

    def test_authorization_is_value_type(
        self, key_reference: KeyReference, fake_service: FakeSigningService
    ) -> None:
        """Test that the first stage captures address and key index."""
        authorizer = KmsAuthorizer(key_reference, service=fake_service)

        authorization = authorizer.authorize(ADDRESS, 0)

        assert isinstance(authorization, Authorization)
        assert authorization == Authorization(ADDRESS, 0, authorizer.signer)
        assert "signer" not in repr(authorization)

    def test_fresh_capability_per_call(
        self, key_reference: KeyReference, fake_service: FakeSigningService
    ) -> None:
        """Test that each role gets its own capability instance."""
        authorization = KmsAuthorizer(key_reference, service=fake_service).authorize(ADDRESS, 0)

        proposer = authorization({"role": "proposer"})
        payer = authorization({"role": "payer"})

        assert proposer is not payer
        assert proposer.temp_id == payer.temp_id
        assert proposer.envelope == {"role": "proposer"}
        assert payer.envelope == {"role": "payer"}

    def test_capability_is_hashable(
        self, key_reference: KeyReference, fake_service: FakeSigningService
    ) -> None:
        """Test that capabilities can be used as set members and dict keys."""
        authorization = KmsAuthorizer(key_reference, service=fake_service).authorize(ADDRESS, 0)

        proposer = authorization({"role": "proposer"})
        payer = authorization({"role": "payer"})
        same_proposer = authorization({"role": "proposer"})

        assert hash(proposer) == hash(payer)
        assert proposer != payer
        assert proposer == same_proposer
        assert len({proposer, payer, same_proposer}) == 2

    def test_partial_envelope_is_copied(
        self, key_reference: KeyReference, fake_service: FakeSigningService
    ) -> None:
        """Test that later changes to the caller's mapping do not leak in."""
        partial = {"sequenceNum": 7}
        capability = KmsAuthorizer(key_reference, service=fake_service).authorize(ADDRESS, 0)(
            partial
        )

        partial["sequenceNum"] = 8

        assert capability.envelope == {"sequenceNum": 7}

    def test_to_envelope(
        self, key_reference: KeyReference, fake_service: FakeSigningService
    ) -> None:
        """Test the FCL account mapping."""
        capability = KmsAuthorizer(key_reference, service=fake_service).authorize(ADDRESS, 1)(
            {"kind": "ACCOUNT", "addr": "ignored"}
        )

        envelope = capability.to_envelope()

        assert envelope["kind"] == "ACCOUNT"
        assert envelope["tempId"] == f"{ADDRESS}-1"
        assert envelope["addr"] == "179b6b1cb6755e31"
        assert envelope["keyId"] == 1
        assert envelope["resolve"] is None
        assert envelope["signingFunction"] == capability.signing_function


class TestSigningFunction:
    """Tests for AuthorizationCapability.signing_function."""

    @pytest.mark.asyncio
    async def test_signs_message(
        self,
        key_reference: KeyReference,
        fake_service: FakeSigningService,
        private_key: ec.EllipticCurvePrivateKey,
        message_hex: str,
    ) -> None:
        """Test that the result carries prefixed address, key id and signature."""
        capability = KmsAuthorizer(key_reference, service=fake_service).authorize(
            "179b6b1cb6755e31", 4
        )()

        result = await capability.signing_function(message_hex)

        assert isinstance(result, SigningResult)
        assert result.addr == ADDRESS
        assert result.key_id == 4
        assert len(result.signature) == 64
        verify_raw_signature(private_key, hash_message(message_hex), result.signature)

    @pytest.mark.asyncio
    async def test_accepts_signable_mapping(
        self,
        key_reference: KeyReference,
        fake_service: FakeSigningService,
        private_key: ec.EllipticCurvePrivateKey,
        message_hex: str,
    ) -> None:
        """Test the mapping shape the transaction layer passes."""
        capability = KmsAuthorizer(key_reference, service=fake_service).authorize(ADDRESS, 0)()

        result = await capability.signing_function({"message": message_hex, "roles": {}})

        verify_raw_signature(private_key, hash_message(message_hex), result.signature)

    @pytest.mark.asyncio
    async def test_sign_alias(
        self, key_reference: KeyReference, fake_service: FakeSigningService
    ) -> None:
        """Test that sign is the same operation as signing_function."""
        capability = KmsAuthorizer(key_reference, service=fake_service).authorize(ADDRESS, 0)()

        result = await capability.sign("00")

        assert result.key_id == 0
        assert fake_service.sign_calls[0][1] == hash_message("00")

    @pytest.mark.asyncio
    async def test_signer_errors_propagate(
        self, key_reference: KeyReference, fake_service: FakeSigningService
    ) -> None:
        """Test that integrity failures surface unchanged."""
        fake_service.tamper_signature = True
        capability = KmsAuthorizer(key_reference, service=fake_service).authorize(ADDRESS, 0)()

        with pytest.raises(IntegrityError):
            await capability.signing_function("00")

    @pytest.mark.asyncio
    async def test_envelope_signing_function(
        self, key_reference: KeyReference, fake_service: FakeSigningService
    ) -> None:
        """Test calling the signing function taken from the envelope."""
        capability = KmsAuthorizer(key_reference, service=fake_service).authorize(ADDRESS, 0)()
        signing_function = capability.to_envelope()["signingFunction"]

        result = await signing_function({"message": "00"})

        assert result.as_dict()["addr"] == ADDRESS
        assert len(result.as_dict()["signature"]) == 128


class TestKmsAuthorizer:
    """Tests for authorizer construction and public key access."""

    def test_default_service_is_cloud_kms(self, key_reference: KeyReference) -> None:
        """Test that Cloud KMS is used when no service is injected."""
        authorizer = KmsAuthorizer(key_reference, client_options={"api_endpoint": "localhost:1"})

        assert isinstance(authorizer.service, GcpKmsSigningService)
        assert authorizer.signer.key_path == key_reference.resource_path

    def test_from_settings(self, key_reference: KeyReference) -> None:
        """Test building an authorizer from configuration."""
        settings = Settings(
            key=KeySettings(resource_path=key_reference.resource_path, curve_byte_width=32),
            client=ClientSettings(api_endpoint="kms.example.com:443", timeout=5.0),
        )

        authorizer = KmsAuthorizer.from_settings(settings)

        assert isinstance(authorizer.service, GcpKmsSigningService)
        assert authorizer.service._client_options == {"api_endpoint": "kms.example.com:443"}
        assert authorizer.service._timeout == 5.0
        assert authorizer.signer.key_path == key_reference.resource_path

    @pytest.mark.asyncio
    async def test_public_key_delegates(
        self,
        key_reference: KeyReference,
        fake_service: FakeSigningService,
        raw_public_key: bytes,
    ) -> None:
        """Test public key accessors."""
        authorizer = KmsAuthorizer(key_reference, service=fake_service)

        assert await authorizer.get_public_key() == raw_public_key
        assert await authorizer.get_public_key_hex() == raw_public_key.hex()

    @pytest.mark.asyncio
    async def test_public_key_failure_raises(self, key_reference: KeyReference) -> None:
        """Test that a failed fetch raises instead of returning an empty key."""
        service = AsyncMock(spec=RemoteSigningService)
        service.fetch_public_key.side_effect = RuntimeError("boom")
        authorizer = KmsAuthorizer(key_reference, service=service)

        with pytest.raises(RuntimeError, match="boom"):
            await authorizer.get_public_key()

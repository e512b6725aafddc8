"""
Send Transaction Example for flow-kms-signer

This example shows how to wire a Cloud KMS key into the three signing roles
of a Flow transaction (proposer, payer, authorizer).

Prerequisites:
    1. An asymmetric EC_SIGN_P256_SHA256 (or EC_SIGN_SECP256K1_SHA256) key
       version in Cloud KMS
    2. Application default credentials with cloudkms.cryptoKeyVersions.useToSign
       and cloudkms.cryptoKeyVersions.viewPublicKey on that key
    3. A Flow account whose key at FLOW_ACCOUNT_KEY_INDEX holds the public key
       printed by this script

Usage:
    export FLOW_KMS_KEY_PROJECT_ID=my-project-id
    export FLOW_KMS_KEY_KEY_RING_ID=flow
    export FLOW_KMS_KEY_KEY_ID=flow-minter-key
    export FLOW_ACCOUNT_ADDRESS=0x179b6b1cb6755e31
    python examples/send_transaction.py [MESSAGE_HEX]

Submitting the signed transaction to an access node is left to the Flow
client library in use; it calls each capability's signing function with the
encoded payload or envelope message.
"""

import asyncio
import os
import sys

from loguru import logger

from flow_kms_signer import (
    GcpKmsSigningService,
    IntegrityError,
    KmsAuthorizer,
    configure_logging_from_settings,
    get_settings,
)

ADDRESS = os.environ.get("FLOW_ACCOUNT_ADDRESS", "0x179b6b1cb6755e31")
KEY_INDEX = int(os.environ.get("FLOW_ACCOUNT_KEY_INDEX", "0"))

# Stand-in for an RLP-encoded transaction payload with its domain tag
DEFAULT_MESSAGE = b"FLOW-V0.0-transaction".ljust(32, b"\x00").hex() + "f8"


async def main(message_hex: str) -> None:
    """Print the account public key and sign one message per role."""
    settings = get_settings()
    configure_logging_from_settings(settings)

    client_options = None
    if settings.client.api_endpoint:
        client_options = {"api_endpoint": settings.client.api_endpoint}

    async with GcpKmsSigningService(
        client_options=client_options, timeout=settings.client.timeout
    ) as service:
        authorizer = KmsAuthorizer(
            settings.key.key_reference(),
            service=service,
            curve_byte_width=settings.key.curve_byte_width,
        )
        logger.info(f"Key: {authorizer.signer.key_path}")

        public_key = await authorizer.get_public_key_hex()
        logger.info(f"Public key: {public_key}")

        authorization = authorizer.authorize(ADDRESS, KEY_INDEX)

        # The transaction layer asks for a fresh capability per role
        roles = {
            "proposer": authorization({"role": {"proposer": True}}),
            "payer": authorization({"role": {"payer": True}}),
            "authorizer": authorization({"role": {"authorizer": True}}),
        }

        for role, capability in roles.items():
            account = capability.to_envelope()
            logger.info(f"{role}: tempId={account['tempId']} keyId={account['keyId']}")

            try:
                result = await capability.signing_function({"message": message_hex})
            except IntegrityError as e:
                logger.error(f"{role}: {e}")
                sys.exit(1)

            logger.info(f"{role}: signature={result.signature_hex}")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_MESSAGE))

"""flow-kms-signer.

Sign Flow blockchain transactions with an ECDSA key that never leaves
Google Cloud KMS.
"""

from loguru import logger

from flow_kms_signer.asn1 import decode_public_key, decode_signature
from flow_kms_signer.authorizer import (
    Authorization,
    AuthorizationCapability,
    KmsAuthorizer,
    sans_prefix,
    with_prefix,
)
from flow_kms_signer.config import Settings, get_settings
from flow_kms_signer.exceptions import (
    Asn1DecodeError,
    IntegrityError,
    IntegrityErrorKind,
    InvalidMessageError,
    KmsSignerError,
    ValidationError,
)
from flow_kms_signer.logging import configure_logging, configure_logging_from_settings
from flow_kms_signer.models import (
    KeyReference,
    PublicKeyResponse,
    SignDigestResponse,
    SigningResult,
)
from flow_kms_signer.service import GcpKmsSigningService, RemoteSigningService
from flow_kms_signer.signer import Signer, hash_message

# Silent until the application configures logging
logger.disable("flow_kms_signer")

__version__ = "1.0.0"
__all__ = [
    # Authorization
    "KmsAuthorizer",
    "Authorization",
    "AuthorizationCapability",
    "sans_prefix",
    "with_prefix",
    # Signing
    "Signer",
    "hash_message",
    "decode_public_key",
    "decode_signature",
    # Remote service
    "RemoteSigningService",
    "GcpKmsSigningService",
    # Configuration
    "Settings",
    "get_settings",
    "configure_logging",
    "configure_logging_from_settings",
    # Exceptions
    "KmsSignerError",
    "IntegrityError",
    "IntegrityErrorKind",
    "Asn1DecodeError",
    "InvalidMessageError",
    "ValidationError",
    # Models
    "KeyReference",
    "PublicKeyResponse",
    "SignDigestResponse",
    "SigningResult",
]

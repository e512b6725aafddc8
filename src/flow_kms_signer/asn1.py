"""Conversion of KMS key and signature encodings into Flow's raw forms.

Cloud KMS returns public keys as PEM SubjectPublicKeyInfo and signatures as
DER ``ECDSA-Sig-Value``. Flow verifies raw fixed-width values, so this
module turns

- a SubjectPublicKeyInfo into ``X || Y``, and
- a ``SEQUENCE { r INTEGER, s INTEGER }`` into ``r || s``,

with each component exactly ``curve_byte_width`` bytes long. Parsing is
done by ``cryptography``, which enforces strict DER.
"""

from __future__ import annotations

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from flow_kms_signer.exceptions import Asn1DecodeError

UNCOMPRESSED_POINT_MARKER = 0x04
DEFAULT_CURVE_BYTE_WIDTH = 32

_PEM_BEGIN = b"-----BEGIN"


def _load_public_key(encoded: bytes) -> ec.EllipticCurvePublicKey:
    """Load a PEM or DER SubjectPublicKeyInfo holding an EC key."""
    try:
        if encoded.lstrip().startswith(_PEM_BEGIN):
            key = serialization.load_pem_public_key(encoded)
        else:
            key = serialization.load_der_public_key(encoded)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise Asn1DecodeError(f"Invalid public key: {e}") from e

    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise Asn1DecodeError(f"Expected an EC public key, got {type(key).__name__}")
    return key


def decode_public_key(
    encoded: bytes, curve_byte_width: int = DEFAULT_CURVE_BYTE_WIDTH
) -> bytes:
    """Decode a SubjectPublicKeyInfo into a raw ``X || Y`` public key.

    Args:
        encoded: DER SubjectPublicKeyInfo, or the same wrapped in PEM armor
        curve_byte_width: Byte width of one curve coordinate

    Returns:
        ``2 * curve_byte_width`` bytes, without the uncompressed-point marker

    Raises:
        Asn1DecodeError: If the key cannot be parsed, is not an EC key, or
            its curve does not match ``curve_byte_width``
    """
    key = _load_public_key(bytes(encoded))

    key_width = (key.curve.key_size + 7) // 8
    if key_width != curve_byte_width:
        raise Asn1DecodeError(
            f"Key on {key.curve.name} has {key_width}-byte coordinates, "
            f"expected {curve_byte_width}"
        )

    point = key.public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
    )
    if len(point) != 1 + 2 * curve_byte_width or point[0] != UNCOMPRESSED_POINT_MARKER:
        raise Asn1DecodeError(f"Unexpected uncompressed point of {len(point)} bytes")

    return point[1:]


def decode_signature(der: bytes, curve_byte_width: int = DEFAULT_CURVE_BYTE_WIDTH) -> bytes:
    """Decode a DER ECDSA signature into a raw fixed-width ``r || s``.

    Args:
        der: DER-encoded ``SEQUENCE { r INTEGER, s INTEGER }``
        curve_byte_width: Byte width of one signature component

    Returns:
        ``2 * curve_byte_width`` bytes, each integer left-padded with zeros

    Raises:
        Asn1DecodeError: If the input is not strict DER with two non-negative
            INTEGERs, or a component is wider than the curve
    """
    try:
        r, s = decode_dss_signature(bytes(der))
    except ValueError as e:
        raise Asn1DecodeError(f"Invalid DER signature: {e}") from e

    limit = 1 << (8 * curve_byte_width)
    for name, value in (("r", r), ("s", s)):
        if value >= limit:
            raise Asn1DecodeError(
                f"INTEGER {name} is {(value.bit_length() + 7) // 8} bytes, "
                f"larger than the {curve_byte_width}-byte curve width"
            )

    return r.to_bytes(curve_byte_width, "big") + s.to_bytes(curve_byte_width, "big")

"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Deterministic ECDSA P-256 key derivation for the SigV4A signing algorithm.

SigV4A signs with an asymmetric key that both the client and AWS can compute
from the same long-term credentials. The private scalar comes from a NIST
SP 800-108 counter-mode KDF keyed with HMAC-SHA256:

    Key         = "AWS4A" + <SecretAccessKey>
    FixedInput  = be32(1) || "AWS4-ECDSA-P256-SHA256" || 0x00
                  || <AccessKeyId> || u8(<Counter>) || be32(256)
    Candidate   = HMAC-SHA256(Key, FixedInput)

Candidates are drawn for counters 1..254 and the first one not greater than
``n - 2`` is accepted, so ``Candidate + 1`` is a valid scalar in ``[1, n - 1]``.
"""

import hmac
import logging
from binascii import Error as BinasciiError
from binascii import unhexlify
from hashlib import sha256

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from .exceptions import KeyDerivationError

logger = logging.getLogger(__name__)

SIGV4A_ALGORITHM: str = "AWS4-ECDSA-P256-SHA256"
SIGV4A_KEY_PREFIX: str = "AWS4A"

# Order of the P-256 base point.
P256_ORDER: int = int(
    "FFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551", 16
)
P256_ORDER_MINUS_TWO: int = P256_ORDER - 2

MAX_KEY_DERIVATION_COUNTER: int = 254
_KDF_ITERATION = (1).to_bytes(4, "big")
_KDF_OUTPUT_BITS = (256).to_bytes(4, "big")


def _fixed_input(access_key_id: bytes, counter: int) -> bytes:
    return b"".join(
        (
            _KDF_ITERATION,
            SIGV4A_ALGORITHM.encode(),
            b"\x00",
            access_key_id,
            counter.to_bytes(1, "big"),
            _KDF_OUTPUT_BITS,
        )
    )


def derive_private_scalar(access_key_id: str, secret_access_key: str) -> int:
    """Derive the SigV4A private scalar for a set of credentials.

    :param access_key_id: The AWS access key id. Must not be empty.
    :param secret_access_key: The matching secret access key.
    :returns: An integer in ``[1, n - 1]`` where ``n`` is the P-256 group order.
    :raises KeyDerivationError: If the access key id is empty or no candidate
        is accepted within the counter budget.
    """
    if not access_key_id:
        raise KeyDerivationError(
            "Cannot derive a SigV4A signing key without an access key id."
        )

    key = f"{SIGV4A_KEY_PREFIX}{secret_access_key}".encode()
    encoded_access_key_id = access_key_id.encode()
    for counter in range(1, MAX_KEY_DERIVATION_COUNTER + 1):
        digest = hmac.new(
            key=key,
            msg=_fixed_input(encoded_access_key_id, counter),
            digestmod=sha256,
        ).digest()
        candidate = int.from_bytes(digest, "big")
        if candidate <= P256_ORDER_MINUS_TWO:
            logger.debug("Derived SigV4A signing key using counter %d.", counter)
            return candidate + 1

    raise KeyDerivationError(
        "Exhausted the SigV4A key derivation counter after "
        f"{MAX_KEY_DERIVATION_COUNTER} attempts."
    )


def derive_private_key(
    access_key_id: str, secret_access_key: str
) -> ec.EllipticCurvePrivateKey:
    """Derive the SigV4A ECDSA P-256 private key for a set of credentials."""
    return ec.derive_private_key(
        derive_private_scalar(access_key_id, secret_access_key), ec.SECP256R1()
    )


def derive_public_key(
    private_key: ec.EllipticCurvePrivateKey,
) -> ec.EllipticCurvePublicKey:
    """Compute the public point ``d * G`` for a derived private key.

    The point coordinates are available from ``public_numbers().x`` and
    ``public_numbers().y``.
    """
    return private_key.public_key()


def sign_string(private_key: ec.EllipticCurvePrivateKey, string_to_sign: str) -> str:
    """Sign ``SHA-256(string_to_sign)`` and return the DER signature as hex.

    Nonces follow RFC 6979, so equal inputs give equal signatures.
    """
    signature = private_key.sign(
        string_to_sign.encode(),
        ec.ECDSA(hashes.SHA256(), deterministic_signing=True),
    )
    return signature.hex()


def verify_signature(
    public_key: ec.EllipticCurvePublicKey,
    string_to_sign: str,
    signature: str | bytes,
) -> bool:
    """Check a SigV4A signature the way a relying party would.

    :param public_key: Public key derived from the signing credentials.
    :param string_to_sign: The string to sign the signature was computed over.
    :param signature: DER-encoded signature, either raw or hex encoded.
    """
    if isinstance(signature, str):
        try:
            signature = unhexlify(signature)
        except (BinasciiError, ValueError):
            return False
    try:
        public_key.verify(signature, string_to_sign.encode(), ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        return False
    return True

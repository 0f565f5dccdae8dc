"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0
"""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from aws_sigv4a_signers import keys
from aws_sigv4a_signers.exceptions import KeyDerivationError
from aws_sigv4a_signers.keys import (
    P256_ORDER,
    derive_private_key,
    derive_private_scalar,
    derive_public_key,
    sign_string,
    verify_signature,
)

# Curve parameters for checking that derived points lie on P-256.
P256_PRIME = 2**256 - 2**224 + 2**192 + 2**96 - 1
P256_B = int("5AC635D8AA3A93E7B3EBBD55769886BC651D06B0CC53B0F63BCE3C3E27D2604B", 16)


class TestKeyDerivation:
    def test_derivation_is_deterministic(self):
        assert derive_private_scalar("akid", "secret") == derive_private_scalar(
            "akid", "secret"
        )

    @pytest.mark.parametrize(
        "access_key_id, secret_access_key",
        [
            ("akid", "secret"),
            ("AKIDEXAMPLE", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"),
            ("AKISORANDOMAASORANDOM", "q+jcrXGc+0zWN6uzclKVhvMmUsIfRpa4ZwQHlbHh"),
            ("akid", ""),
        ],
    )
    def test_scalar_in_range(self, access_key_id: str, secret_access_key: str):
        scalar = derive_private_scalar(access_key_id, secret_access_key)
        assert 1 <= scalar <= P256_ORDER - 1

    def test_inputs_change_scalar(self):
        base = derive_private_scalar("akid", "secret")
        assert derive_private_scalar("akid", "other-secret") != base
        assert derive_private_scalar("other-akid", "secret") != base

    def test_private_key_wraps_scalar(self):
        private_key = derive_private_key("akid", "secret")
        assert isinstance(private_key.curve, ec.SECP256R1)
        assert private_key.private_numbers().private_value == derive_private_scalar(
            "akid", "secret"
        )

    def test_public_key_is_on_curve(self):
        public_numbers = derive_public_key(
            derive_private_key("akid", "secret")
        ).public_numbers()
        x, y = public_numbers.x, public_numbers.y
        assert (y * y - (x * x * x - 3 * x + P256_B)) % P256_PRIME == 0

    def test_known_public_key(self):
        public_numbers = derive_public_key(
            derive_private_key(
                "AKIDEXAMPLE", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"
            )
        ).public_numbers()
        assert (
            f"{public_numbers.x:064x}"
            == "b6618f6a65740a99e650b33b6b4b5bd0d43b176d721a3edfea7e7d2d56d936b1"
        )
        assert (
            f"{public_numbers.y:064x}"
            == "865ed22a7eadc9c5cb9d2cbaca1b3699139fedc5043dc6661864218330c8e518"
        )

    def test_empty_access_key_id(self):
        with pytest.raises(KeyDerivationError):
            derive_private_scalar("", "secret")

    def test_key_derivation_error_is_value_error(self):
        with pytest.raises(ValueError):
            derive_private_key("", "secret")

    def test_exhausted_counter(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(keys, "P256_ORDER_MINUS_TWO", -1)
        with pytest.raises(KeyDerivationError, match="Exhausted"):
            derive_private_scalar("akid", "secret")


class TestSignatures:
    STRING_TO_SIGN = (
        "AWS4-ECDSA-P256-SHA256\n"
        "20180102T030400Z\n"
        "20180102/service/aws4_request\n"
        "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    )

    def test_round_trip(self):
        private_key = derive_private_key("akid", "secret")
        signature = sign_string(private_key, self.STRING_TO_SIGN)
        assert signature == signature.lower()
        assert verify_signature(
            derive_public_key(private_key), self.STRING_TO_SIGN, signature
        )
        assert verify_signature(
            derive_public_key(private_key),
            self.STRING_TO_SIGN,
            bytes.fromhex(signature),
        )

    def test_signing_is_deterministic(self):
        private_key = derive_private_key("akid", "secret")
        assert sign_string(private_key, self.STRING_TO_SIGN) == sign_string(
            private_key, self.STRING_TO_SIGN
        )

    def test_public_key_rederived_from_credentials_verifies(self):
        signature = sign_string(
            derive_private_key("akid", "secret"), self.STRING_TO_SIGN
        )
        public_key = derive_public_key(derive_private_key("akid", "secret"))
        assert verify_signature(public_key, self.STRING_TO_SIGN, signature)

    def test_tampered_string_to_sign(self):
        private_key = derive_private_key("akid", "secret")
        signature = sign_string(private_key, self.STRING_TO_SIGN)
        assert not verify_signature(
            derive_public_key(private_key), self.STRING_TO_SIGN + "x", signature
        )

    def test_wrong_key(self):
        signature = sign_string(
            derive_private_key("akid", "secret"), self.STRING_TO_SIGN
        )
        other_key = derive_public_key(derive_private_key("akid", "not-secret"))
        assert not verify_signature(other_key, self.STRING_TO_SIGN, signature)

    def test_malformed_signature(self):
        public_key = derive_public_key(derive_private_key("akid", "secret"))
        assert not verify_signature(public_key, self.STRING_TO_SIGN, "not-hex")
        assert not verify_signature(public_key, self.STRING_TO_SIGN, "abcd")

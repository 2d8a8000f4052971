import base64

import pytest

from cgplugin.identity.keys import (
    KeyPair,
    PublicKeyHolder,
    decode_signature,
    encode_signature,
)
from cgplugin.utils.exceptions import ConfigurationError, SignatureFormatError


def _bare_body(pem: str) -> str:
    return "".join(line for line in pem.splitlines() if not line.startswith("-----"))


def test_sign_and_verify_round_trip(keys):
    pair = KeyPair.from_pem(*keys)
    signature = pair.sign_text("hello ☃")
    assert pair.public.verify_text("hello ☃", signature) is True
    assert pair.public.verify_text("hello", signature) is False


def test_signature_from_other_key_is_rejected(keys, other_keys):
    signature = KeyPair.from_pem(*other_keys).sign_text("payload")
    assert PublicKeyHolder.from_pem(keys[1]).verify_text("payload", signature) is False


def test_public_key_accepts_bare_base64_body(keys):
    holder = PublicKeyHolder.from_pem(_bare_body(keys[1]))
    signature = KeyPair.from_pem(*keys).sign_text("x")
    assert holder.verify_text("x", signature) is True


@pytest.mark.parametrize("material", ["", "   ", "not a key", "-----BEGIN PUBLIC KEY-----\nAAAA\n-----END PUBLIC KEY-----"])
def test_unparseable_public_key(material):
    with pytest.raises(ConfigurationError) as exc_info:
        PublicKeyHolder.from_pem(material)
    assert exc_info.value.details["field"] == "public_key"


def test_private_key_must_be_pem(keys):
    with pytest.raises(ConfigurationError) as exc_info:
        KeyPair.from_pem("garbage", keys[1])
    assert exc_info.value.details["field"] == "private_key"


def test_mismatched_pair_rejected(keys, other_keys):
    with pytest.raises(ConfigurationError):
        KeyPair.from_pem(keys[0], other_keys[1])


def test_decode_signature_rejects_non_base64():
    with pytest.raises(SignatureFormatError):
        decode_signature("not*base64!")
    assert decode_signature(encode_signature(b"\x00\x01")) == b"\x00\x01"


def test_verify_text_propagates_format_error(keys):
    holder = PublicKeyHolder.from_pem(keys[1])
    with pytest.raises(SignatureFormatError):
        holder.verify_text("x", "%%%")


def test_signature_is_standard_base64(keys):
    signature = KeyPair.from_pem(*keys).sign_text("abc")
    assert len(base64.b64decode(signature, validate=True)) == 256


def test_verify_text_rejects_unencodable_text(keys):
    pair = KeyPair.from_pem(*keys)
    signature = pair.sign_text("x")
    assert pair.public.verify_text("x\ud800", signature) is False

"""Key material helpers."""

from cgplugin.identity.keys import (
    KeyPair,
    PublicKeyHolder,
    decode_signature,
    encode_signature,
    generate_key_pair,
)

__all__ = [
    "KeyPair",
    "PublicKeyHolder",
    "decode_signature",
    "encode_signature",
    "generate_key_pair",
]

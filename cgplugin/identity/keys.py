"""RSA key material: PEM import, RSASSA-PKCS1-v1_5/SHA-256 sign and verify.

Host side loads a KeyPair (private + public), the plugin side only a
PublicKeyHolder. Signatures travel as standard base64.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_der_public_key,
    load_pem_private_key,
    load_pem_public_key,
)

from cgplugin.utils.exceptions import ConfigurationError, SignatureFormatError

DEFAULT_KEY_BITS = 2048


def encode_signature(signature: bytes) -> str:
    return base64.b64encode(signature).decode("ascii")


def decode_signature(signature: str) -> bytes:
    """Decode a base64 signature; raise SignatureFormatError if it is not base64."""
    try:
        return base64.b64decode(signature.strip(), validate=True)
    except (binascii.Error, ValueError, AttributeError) as exc:
        raise SignatureFormatError() from exc


def _load_public_key(material: str) -> rsa.RSAPublicKey:
    text = (material or "").strip()
    if not text:
        raise ConfigurationError("public key is empty", field="public_key")
    try:
        if "BEGIN" in text:
            key = load_pem_public_key(text.encode("utf-8"))
        else:
            # Bare base64 SPKI body without PEM armour.
            der = base64.b64decode("".join(text.split()), validate=True)
            key = load_der_public_key(der)
    except (ValueError, TypeError, binascii.Error) as exc:
        raise ConfigurationError(f"cannot import public key: {exc}", field="public_key") from exc
    if not isinstance(key, rsa.RSAPublicKey):
        raise ConfigurationError("public key is not an RSA key", field="public_key")
    return key


def _load_private_key(material: str) -> rsa.RSAPrivateKey:
    text = (material or "").strip()
    if not text:
        raise ConfigurationError("private key is empty", field="private_key")
    try:
        key = load_pem_private_key(text.encode("utf-8"), password=None)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(f"cannot import private key: {exc}", field="private_key") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ConfigurationError("private key is not an RSA key", field="private_key")
    return key


@dataclass(frozen=True)
class PublicKeyHolder:
    """Verification-only key material (plugin side)."""

    pem: str
    key: rsa.RSAPublicKey

    @classmethod
    def from_pem(cls, material: str) -> "PublicKeyHolder":
        return cls(pem=material, key=_load_public_key(material))

    def verify(self, signature: bytes, data: bytes) -> bool:
        try:
            self.key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
            return True
        except InvalidSignature:
            return False

    def verify_text(self, text: str, signature_b64: str) -> bool:
        """Verify a base64 signature over the UTF-8 bytes of text.

        Text that cannot be UTF-8 encoded (lone surrogates) never verifies.
        """
        signature = decode_signature(signature_b64)
        try:
            data = text.encode("utf-8")
        except UnicodeEncodeError:
            return False
        return self.verify(signature, data)


@dataclass(frozen=True)
class KeyPair:
    """Signing key pair (host side)."""

    private_pem: str
    public_pem: str
    private_key: rsa.RSAPrivateKey
    public: PublicKeyHolder

    @classmethod
    def from_pem(cls, private_pem: str, public_pem: str) -> "KeyPair":
        private_key = _load_private_key(private_pem)
        public = PublicKeyHolder.from_pem(public_pem)
        if private_key.public_key().public_numbers() != public.key.public_numbers():
            raise ConfigurationError("public key does not match private key", field="public_key")
        return cls(private_pem=private_pem, public_pem=public_pem, private_key=private_key, public=public)

    def sign(self, data: bytes) -> bytes:
        return self.private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())

    def sign_text(self, text: str) -> str:
        """Sign the UTF-8 bytes of text; return base64."""
        return encode_signature(self.sign(text.encode("utf-8")))

    def verify(self, signature: bytes, data: bytes) -> bool:
        return self.public.verify(signature, data)


def generate_key_pair(bits: int = DEFAULT_KEY_BITS) -> tuple[str, str]:
    """Generate an RSA key pair; return (PKCS#8 private PEM, SPKI public PEM)."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    private_pem = private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    ).decode("ascii")
    public_pem = private_key.public_key().public_bytes(
        encoding=Encoding.PEM,
        format=PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return private_pem, public_pem

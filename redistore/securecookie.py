"""Signed (and optionally encrypted) cookie values.

Each ``SecureCookie`` signs with an itsdangerous timed serializer keyed by a
hash key. Given a block key it also AES-GCM-encrypts the value first. A
list of codecs supports key rotation: the first one encodes, every one is
tried when decoding.
"""

from __future__ import annotations

import base64
import binascii
import secrets
from typing import TYPE_CHECKING, Sequence

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer

from .errors import CodecError

if TYPE_CHECKING:
    from .session.backend import Codec

DEFAULT_MAX_AGE = 86400 * 30  # 30 days
DEFAULT_MAX_LENGTH = 4096

_NONCE_SIZE = 12
_TAG_SIZE = 16


def generate_random_key(length: int = 32) -> bytes:
    """Return ``length`` cryptographically random bytes."""
    return secrets.token_bytes(length)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


class SecureCookie:
    """Cookie codec bound to one hash key and an optional block key.

    The cookie name is used as the signature salt and as AES-GCM associated
    data, so a value minted for one cookie does not decode under another.
    """

    def __init__(
        self,
        hash_key: bytes,
        block_key: bytes | None = None,
        max_age: int = DEFAULT_MAX_AGE,
    ) -> None:
        if not hash_key:
            raise CodecError("securecookie: hash key is not set")
        self._signer = URLSafeTimedSerializer(hash_key)
        self._aead: AESGCM | None = None
        if block_key:
            try:
                self._aead = AESGCM(block_key)
            except ValueError as e:
                raise CodecError(f"securecookie: invalid block key: {e}") from e
        self.max_age = max_age
        self.max_length = DEFAULT_MAX_LENGTH

    def set_max_age(self, seconds: int) -> None:
        """Bound signature validity to ``seconds``; 0 disables the check."""
        self.max_age = seconds

    def set_max_length(self, length: int) -> None:
        """Limit the encoded value length; 0 disables the check."""
        self.max_length = length

    def encode(self, name: str, value: str) -> str:
        payload = value
        if self._aead is not None:
            nonce = secrets.token_bytes(_NONCE_SIZE)
            sealed = self._aead.encrypt(nonce, value.encode(), name.encode())
            payload = _b64encode(nonce + sealed)
        encoded = self._signer.dumps(payload, salt=name)
        if self.max_length and len(encoded) > self.max_length:
            raise CodecError("securecookie: the value is too long")
        return encoded

    def decode(self, name: str, value: str) -> str:
        if self.max_length and len(value) > self.max_length:
            raise CodecError("securecookie: the value is too long")
        try:
            payload = self._signer.loads(value, max_age=self.max_age or None, salt=name)
        except SignatureExpired as e:
            raise CodecError("securecookie: expired timestamp") from e
        except BadData as e:
            raise CodecError("securecookie: the value is not valid") from e
        if not isinstance(payload, str):
            raise CodecError("securecookie: the value is not valid")
        if self._aead is None:
            return payload

        try:
            raw = _b64decode(payload)
        except (binascii.Error, ValueError) as e:
            raise CodecError("securecookie: the value could not be decrypted") from e
        if len(raw) < _NONCE_SIZE + _TAG_SIZE:
            raise CodecError("securecookie: the value could not be decrypted")
        try:
            plain = self._aead.decrypt(raw[:_NONCE_SIZE], raw[_NONCE_SIZE:], name.encode())
        except InvalidTag as e:
            raise CodecError("securecookie: the value could not be decrypted") from e
        return plain.decode()


def codecs_from_pairs(*keys: bytes | None) -> list[SecureCookie]:
    """Build codecs from alternating hash and block keys.

    A trailing hash key without a block key (or an empty block key) gives a
    sign-only codec. Order is preserved, so list the newest key pair first.
    """
    codecs = []
    for i in range(0, len(keys), 2):
        hash_key = keys[i]
        block_key = keys[i + 1] if i + 1 < len(keys) else None
        codecs.append(SecureCookie(hash_key or b"", block_key or None))
    return codecs


def encode_multi(name: str, value: str, codecs: Sequence[Codec]) -> str:
    """Encode ``value`` with the primary (first) codec."""
    if not codecs:
        raise CodecError("securecookie: no codecs were provided")
    return codecs[0].encode(name, value)


def decode_multi(name: str, value: str, codecs: Sequence[Codec]) -> str:
    """Decode ``value`` with the first codec that accepts it."""
    if not codecs:
        raise CodecError("securecookie: no codecs were provided")
    errors: list[Exception] = []
    for codec in codecs:
        try:
            return codec.decode(name, value)
        except CodecError as e:
            errors.append(e)
    raise CodecError(
        "; ".join(str(e) for e in errors) or "securecookie: the value is not valid",
        errors=errors,
    )

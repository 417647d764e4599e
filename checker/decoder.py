"""
Decoding of the dot-delimited signed metadata token.

Only the middle (payload) segment is consumed. Authenticity is delegated to
a PayloadVerifier; the default one accepts every token, so the payload is
trusted for its structure only.
"""

import base64
import binascii
from typing import List, Optional, Protocol

import jwt

from .errors import DecodeError

_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


class PayloadVerifier(Protocol):
    """Checks a token's signature before its payload is used."""

    def verify(self, token: str) -> None:
        """Raise DecodeError if the token's signature is not valid."""
        ...


class UnverifiedPayload:
    """Accepts any signature, including none."""

    def verify(self, token: str) -> None:
        return None


class HmacSignatureVerifier:
    """Shared-secret JWT signature check, HS256 unless told otherwise."""

    def __init__(self, secret: str, algorithms: Optional[List[str]] = None):
        self.secret = secret
        self.algorithms = algorithms or ["HS256"]

    def verify(self, token: str) -> None:
        try:
            jwt.decode(
                token,
                key=self.secret,
                algorithms=self.algorithms,
                options={"verify_aud": False}
            )
        except jwt.InvalidTokenError as e:
            raise DecodeError(f"Token signature rejected: {e}") from e


def restore_padding(segment: str) -> str:
    """Pad a base64 segment with '=' to a multiple of four characters."""
    pad = 4 - (len(segment) % 4)
    if pad < 4:
        segment += "=" * pad
    return segment


def _b64decode(segment: str) -> bytes:
    # JWT segments use the URL-safe alphabet; both decode the same way.
    segment = segment.translate(_URLSAFE_TO_STANDARD)
    return base64.b64decode(restore_padding(segment), validate=True)


def decode_token_payload(token: str, verifier: Optional[PayloadVerifier] = None) -> str:
    """
    Extract the payload segment of a signed token as text.

    Args:
        token: ``header.payload[.signature]`` string
        verifier: Signature strategy; defaults to UnverifiedPayload

    Returns:
        Payload decoded from base64 and interpreted as UTF-8

    Raises:
        DecodeError: if the token has no payload segment, the payload is not
            valid base64 or not valid UTF-8, or the verifier rejects it
    """
    parts = token.split(".")
    if len(parts) < 2:
        raise DecodeError("Token has no payload segment")

    (verifier or UnverifiedPayload()).verify(token)

    payload = parts[1]

    try:
        raw = _b64decode(payload)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Token payload is not valid base64: {e}") from e

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Token payload is not valid UTF-8: {e}") from e

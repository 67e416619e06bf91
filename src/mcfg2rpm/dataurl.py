"""Data URL (RFC 2397) decoding for Ignition file contents."""

from __future__ import annotations

import base64 as b64
import binascii
import gzip
import re
import zlib
from urllib.parse import quote_from_bytes, unquote_to_bytes

from .errors import DecodeError

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_source(source: str | None) -> bytes:
    """Decode an Ignition ``contents.source`` into raw bytes.

    A missing source means an empty file.
    """
    if source is None:
        return b""
    header, sep, payload = source.partition(",")
    scheme, colon, mediatype = header.partition(":")
    if not colon:
        raise DecodeError("DATAURL_MALFORMED", "missing scheme")
    if scheme.strip().lower() != "data":
        raise DecodeError("DATAURL_SCHEME_UNSUPPORTED", scheme)
    if not sep:
        raise DecodeError("DATAURL_MALFORMED", "missing ',' separator")
    if _BAD_ESCAPE.search(payload):
        raise DecodeError("DATAURL_PAYLOAD_INVALID", "invalid percent escape")
    data = unquote_to_bytes(payload)
    params = [part.strip().lower() for part in mediatype.split(";")]
    if params[-1] != "base64":
        return data
    try:
        return b64.b64decode(data.replace(b"\r", b"").replace(b"\n", b""), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError("DATAURL_PAYLOAD_INVALID", f"base64: {exc}") from exc


def encode_source(data: bytes, *, base64: bool = False) -> str:
    if base64:
        return "data:;base64," + b64.b64encode(data).decode("ascii")
    return "data:," + quote_from_bytes(data, safe="")


def decode_contents(source: str | None, compression: str | None = None) -> bytes:
    data = decode_source(source)
    if not compression:
        return data
    if compression != "gzip":
        raise DecodeError("COMPRESSION_UNSUPPORTED", compression)
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecodeError("COMPRESSION_PAYLOAD_INVALID", str(exc)) from exc

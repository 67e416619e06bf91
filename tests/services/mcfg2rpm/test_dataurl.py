from __future__ import annotations

import gzip

import pytest

from mcfg2rpm.dataurl import decode_contents, decode_source, encode_source
from mcfg2rpm.errors import DecodeError


def test_decode_plain_and_base64_sources() -> None:
    assert decode_source("data:,hello") == b"hello"
    assert decode_source("data:,hello%20world%0A") == b"hello world\n"
    assert decode_source("data:text/plain;charset=utf-8;base64,aGVsbG8=") == b"hello"


def test_missing_source_is_empty_file() -> None:
    assert decode_source(None) == b""
    assert decode_contents(None) == b""


@pytest.mark.parametrize("use_base64", [False, True])
def test_encoded_bytes_decode_back(use_base64: bool) -> None:
    payload = b"\x00\xffbinary, with % and spaces\n" + bytes(range(256))
    assert decode_source(encode_source(payload, base64=use_base64)) == payload
    assert decode_source(encode_source(b"", base64=use_base64)) == b""


@pytest.mark.parametrize(
    ("source", "code"),
    [
        ("https://example.com/foo", "DATAURL_SCHEME_UNSUPPORTED"),
        ("hello", "DATAURL_MALFORMED"),
        ("data:text/plain", "DATAURL_MALFORMED"),
        ("data:,bad%zzescape", "DATAURL_PAYLOAD_INVALID"),
        ("data:,trailing%4", "DATAURL_PAYLOAD_INVALID"),
        ("data:;base64,@@@@", "DATAURL_PAYLOAD_INVALID"),
    ],
)
def test_decode_rejects_bad_sources(source: str, code: str) -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode_source(source)
    assert excinfo.value.code == code


def test_gzip_compressed_contents() -> None:
    source = encode_source(gzip.compress(b"compressed hello"), base64=True)
    assert decode_contents(source, "gzip") == b"compressed hello"
    assert decode_contents("data:,plain", "") == b"plain"


def test_unknown_or_corrupt_compression() -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode_contents("data:,x", "zstd")
    assert excinfo.value.code == "COMPRESSION_UNSUPPORTED"
    with pytest.raises(DecodeError) as excinfo:
        decode_contents("data:,not-gzip", "gzip")
    assert excinfo.value.code == "COMPRESSION_PAYLOAD_INVALID"


def test_base64_wrapped_across_lines() -> None:
    assert decode_source("data:;base64,aGVs\nbG8=") == b"hello"
    assert decode_source("data:;base64,aGVs%0D%0AbG8=") == b"hello"

from __future__ import annotations

import json

import pytest

from mcfg2rpm.errors import IgnitionError
from mcfg2rpm.ignition import FileEntry, parse_and_convert_config


def _raw(payload: dict) -> bytes:
    return json.dumps(payload).encode("utf-8")


def _v3(files: list[dict], version: str = "3.2.0") -> bytes:
    return _raw({"ignition": {"version": version}, "storage": {"files": files}})


def test_v3_files_keep_document_order() -> None:
    config = parse_and_convert_config(
        _v3(
            [
                {"path": "/etc/b.conf", "contents": {"source": "data:,b"}, "mode": 420},
                {"path": "/etc/a.conf", "contents": {"source": "data:,a", "compression": ""}},
                {"path": "/etc/empty"},
            ]
        )
    )
    assert config.version == "3.2.0"
    assert config.files == (
        FileEntry(path="/etc/b.conf", source="data:,b"),
        FileEntry(path="/etc/a.conf", source="data:,a"),
        FileEntry(path="/etc/empty"),
    )


def test_empty_payload_is_empty_config() -> None:
    config = parse_and_convert_config(b"")
    assert config.version == "3.2.0"
    assert config.files == ()


def test_v2_root_files_are_converted() -> None:
    raw = _raw(
        {
            "ignition": {"version": "2.2.0"},
            "storage": {
                "files": [
                    {"filesystem": "root", "path": "/etc/motd", "contents": {"source": "data:,hi", "verification": {}}}
                ]
            },
        }
    )
    config = parse_and_convert_config(raw)
    assert config.version == "3.2.0"
    assert config.paths() == ["/etc/motd"]


def test_v2_non_root_filesystem_fails_conversion() -> None:
    raw = _raw(
        {
            "ignition": {"version": "2.2.0"},
            "storage": {"files": [{"filesystem": "var", "path": "/etc/motd"}]},
        }
    )
    with pytest.raises(IgnitionError) as excinfo:
        parse_and_convert_config(raw)
    assert excinfo.value.code == "IGNITION_CONVERSION_FAILED"


@pytest.mark.parametrize(
    ("raw", "code"),
    [
        (b"{not json", "IGNITION_JSON_INVALID"),
        (b"[]", "IGNITION_JSON_INVALID"),
        (b"{}", "IGNITION_VERSION_MISSING"),
        (_v3([], version="4.0.0"), "IGNITION_VERSION_UNSUPPORTED"),
        (_v3([{"path": "etc/relative"}]), "IGNITION_SCHEMA_INVALID"),
        (_v3([{"path": "/etc/x", "mode": 99999}]), "IGNITION_SCHEMA_INVALID"),
        (_v3([{"path": "/etc/x", "contents": {"compression": "zstd"}}]), "IGNITION_SCHEMA_INVALID"),
        (_v3([{"path": "/etc/../shadow"}]), "IGNITION_PATH_INVALID"),
        (_v3([{"path": "/etc/x"}, {"path": "/etc/x"}]), "IGNITION_PATH_DUPLICATE"),
    ],
)
def test_invalid_payloads_are_rejected(raw: bytes, code: str) -> None:
    with pytest.raises(IgnitionError) as excinfo:
        parse_and_convert_config(raw)
    assert excinfo.value.code == code


def test_schema_errors_name_the_field() -> None:
    with pytest.raises(IgnitionError) as excinfo:
        parse_and_convert_config(_v3([{"path": "relative"}]))
    assert "storage.files.0.path" in str(excinfo.value)


def test_v2_empty_source_becomes_empty_file() -> None:
    raw = _raw(
        {
            "ignition": {"version": "2.2.0"},
            "storage": {
                "files": [{"filesystem": "root", "path": "/etc/e", "contents": {"source": "", "verification": {}}}]
            },
        }
    )
    assert parse_and_convert_config(raw).files == (FileEntry(path="/etc/e"),)

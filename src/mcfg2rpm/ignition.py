"""Ignition payload parsing, validation and conversion to the 3.x file model."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import posixpath
from typing import Any

from .errors import IgnitionError
from .schemas import SchemaRegistry, default_registry

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "3.2.0"
V2_VERSIONS = frozenset({"2.2.0"})
V3_VERSIONS = frozenset({"3.0.0", "3.1.0", "3.2.0", "3.3.0", "3.4.0"})

_SCHEMA_BY_MAJOR = {
    "2": "ignition_v2.schema.yaml",
    "3": "ignition_v3.schema.yaml",
}


@dataclass(frozen=True)
class FileEntry:
    path: str
    source: str | None = None
    compression: str | None = None


@dataclass(frozen=True)
class IgnitionConfig:
    version: str
    files: tuple[FileEntry, ...] = ()

    def paths(self) -> list[str]:
        return [entry.path for entry in self.files]


def parse_and_convert_config(raw: bytes, *, registry: SchemaRegistry | None = None) -> IgnitionConfig:
    """Parse an embedded Ignition payload into the 3.x file model.

    An empty payload yields an empty config. Spec 2.2 payloads are converted.
    """
    document = parse_config(raw, registry=registry)
    if document is None:
        return IgnitionConfig(version=DEFAULT_VERSION)
    version = document["ignition"]["version"]
    if version in V2_VERSIONS:
        files = _convert_v2_files(document)
        version = DEFAULT_VERSION
    else:
        files = _v3_files(document)
    _check_paths(files)
    return IgnitionConfig(version=version, files=tuple(files))


def parse_config(raw: bytes, *, registry: SchemaRegistry | None = None) -> dict[str, Any] | None:
    if not raw or not raw.strip():
        return None
    try:
        document = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise IgnitionError("IGNITION_JSON_INVALID", str(exc)) from exc
    if not isinstance(document, dict):
        raise IgnitionError("IGNITION_JSON_INVALID", "top-level value must be an object")
    version = detect_version(document)
    if version not in V2_VERSIONS and version not in V3_VERSIONS:
        raise IgnitionError("IGNITION_VERSION_UNSUPPORTED", version)
    schema_name = _SCHEMA_BY_MAJOR[version.split(".", 1)[0]]
    messages = (registry or default_registry()).errors(schema_name, document)
    if messages:
        raise IgnitionError("IGNITION_SCHEMA_INVALID", "; ".join(messages))
    logger.debug("Ignition payload at version %s validated", version)
    return document


def detect_version(document: dict[str, Any]) -> str:
    ignition = document.get("ignition")
    if not isinstance(ignition, dict):
        raise IgnitionError("IGNITION_VERSION_MISSING", "ignition section absent")
    version = ignition.get("version")
    if not isinstance(version, str) or not version:
        raise IgnitionError("IGNITION_VERSION_MISSING", "ignition.version absent")
    return version


def _storage_files(document: dict[str, Any]) -> list[dict[str, Any]]:
    storage = document.get("storage") or {}
    return list(storage.get("files") or [])


def _v3_files(document: dict[str, Any]) -> list[FileEntry]:
    files: list[FileEntry] = []
    for item in _storage_files(document):
        contents = item.get("contents") or {}
        files.append(
            FileEntry(
                path=item["path"],
                source=contents.get("source"),
                compression=contents.get("compression") or None,
            )
        )
    return files


def _convert_v2_files(document: dict[str, Any]) -> list[FileEntry]:
    files: list[FileEntry] = []
    for item in _storage_files(document):
        if item["filesystem"] != "root":
            raise IgnitionError(
                "IGNITION_CONVERSION_FAILED",
                f"{item['path']}: filesystem {item['filesystem']!r} is not 'root'",
            )
        if item.get("append"):
            raise IgnitionError("IGNITION_CONVERSION_FAILED", f"{item['path']}: append is not supported")
        contents = item.get("contents") or {}
        files.append(
            FileEntry(
                path=item["path"],
                source=contents.get("source") or None,
                compression=contents.get("compression") or None,
            )
        )
    return files


def _check_paths(files: list[FileEntry]) -> None:
    seen: set[str] = set()
    for entry in files:
        if ".." in entry.path.split("/") or posixpath.normpath(entry.path) != entry.path:
            raise IgnitionError("IGNITION_PATH_INVALID", entry.path)
        if entry.path in seen:
            raise IgnitionError("IGNITION_PATH_DUPLICATE", entry.path)
        seen.add(entry.path)

"""Package manifest assembly and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

from .errors import ManifestValidationError
from .materializer import staged_path
from .policy import PackagePolicy
from .schemas import SchemaRegistry, default_registry
from .translator import WrappedMachineConfig, translate

logger = logging.getLogger(__name__)

RELATIONSHIPS = ("provides", "depends", "replaces", "recommends", "suggests", "conflicts")


@dataclass(frozen=True)
class ContentEntry:
    source: str
    destination: str

    def as_dict(self) -> dict[str, str]:
        return {"source": self.source, "destination": self.destination}


@dataclass(frozen=True)
class PackageManifest:
    name: str
    version: str
    release: str
    arch: str
    platform: str
    section: str
    maintainer: str = ""
    description: str = ""
    license: str = ""
    provides: tuple[str, ...] = ()
    depends: tuple[str, ...] = ()
    replaces: tuple[str, ...] = ()
    recommends: tuple[str, ...] = ()
    suggests: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    contents: tuple[ContentEntry, ...] = field(default=())

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "release": self.release,
            "arch": self.arch,
            "platform": self.platform,
            "section": self.section,
            "maintainer": self.maintainer,
            "description": self.description,
            "license": self.license,
        }
        for relation in RELATIONSHIPS:
            payload[relation] = list(getattr(self, relation))
        payload["contents"] = [entry.as_dict() for entry in self.contents]
        return payload


def build_manifest(
    wrapped: WrappedMachineConfig,
    staging_root: Path,
    policy: PackagePolicy | None = None,
    *,
    registry: SchemaRegistry | None = None,
) -> PackageManifest:
    """Describe the staged file tree of ``wrapped`` as a package manifest.

    Reads nothing from disk; sources are where the materializer writes them.
    """
    policy = policy or PackagePolicy()
    logger.info("Building package manifest for %s", wrapped.name)
    translated = translate(wrapped)
    contents = tuple(
        ContentEntry(source=str(staged_path(staging_root, entry.path)), destination=entry.path)
        for entry in translated.files
    )
    manifest = PackageManifest(
        name=wrapped.name,
        version=policy.version,
        release=policy.release,
        arch=policy.arch,
        platform=policy.platform,
        section=policy.section,
        maintainer=policy.maintainer,
        description=policy.description,
        license=policy.license,
        provides=tuple(policy.provides),
        depends=tuple(policy.depends),
        replaces=tuple(policy.replaces),
        recommends=tuple(policy.recommends),
        suggests=tuple(policy.suggests),
        conflicts=tuple(policy.conflicts),
        contents=contents,
    )
    validate_manifest(manifest, registry=registry)
    return manifest


def validate_manifest(manifest: PackageManifest, *, registry: SchemaRegistry | None = None) -> None:
    messages = (registry or default_registry()).errors("package_manifest.schema.yaml", manifest.as_dict())
    if messages:
        raise ManifestValidationError("MANIFEST_SCHEMA_INVALID", "; ".join(messages))

    seen: set[str] = set()
    for entry in manifest.contents:
        if entry.destination in seen:
            raise ManifestValidationError("CONTENT_DESTINATION_DUPLICATE", entry.destination)
        seen.add(entry.destination)

    depends = {_identifier(item) for item in manifest.depends}
    conflicts = {_identifier(item) for item in manifest.conflicts}
    overlap = sorted(depends & conflicts)
    if overlap:
        raise ManifestValidationError("RELATIONSHIP_CONFLICT", f"depends and conflicts both name {', '.join(overlap)}")
    if manifest.name in conflicts:
        raise ManifestValidationError("RELATIONSHIP_CONFLICT", f"package conflicts with itself: {manifest.name}")


def verify_staged_sources(manifest: PackageManifest) -> None:
    """Fail when a content source was not staged on disk."""
    for entry in manifest.contents:
        if not Path(entry.source).is_file():
            raise ManifestValidationError("CONTENT_SOURCE_MISSING", entry.source)


def _identifier(relation: str) -> str:
    return relation.split()[0].split("<")[0].split(">")[0].split("=")[0]

"""Package format registry and archive writers."""

from __future__ import annotations

from dataclasses import dataclass
import gzip
import io
import json
import logging
import os
from pathlib import Path
import re
import shutil
import subprocess
import tarfile
import tempfile
from typing import Any, BinaryIO

import yaml

from .errors import PackagerError, PackageValidationError, UnknownFormatError
from .manifest import PackageManifest

logger = logging.getLogger(__name__)

_SEMVER_PREFIX = re.compile(r"^v(?=\d)")

RPM_ARCHES = {
    "amd64": "x86_64",
    "386": "i386",
    "arm64": "aarch64",
    "arm7": "armv7hl",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "all": "noarch",
}
DEB_ARCHES = {
    "amd64": "amd64",
    "386": "i386",
    "arm64": "arm64",
    "arm7": "armhf",
    "ppc64le": "ppc64el",
    "s390x": "s390x",
    "all": "all",
}
APK_ARCHES = {
    "amd64": "x86_64",
    "386": "x86",
    "arm64": "aarch64",
    "arm7": "armv7",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "all": "noarch",
}


@dataclass(frozen=True)
class PackageInfo:
    """Manifest resolved for one format: normalized version and native arch."""

    format_name: str
    manifest: PackageManifest
    version: str
    arch: str
    target: str | None = None

    @property
    def name(self) -> str:
        return self.manifest.name

    @property
    def release(self) -> str:
        return self.manifest.release


class Packager:
    name = ""
    file_name_template = ""
    arches: dict[str, str] | None = None

    def info(self, manifest: PackageManifest) -> PackageInfo:
        arch = manifest.arch
        if self.arches is not None:
            arch = self.arches.get(manifest.arch, "")
        return PackageInfo(
            format_name=self.name,
            manifest=manifest,
            version=_SEMVER_PREFIX.sub("", manifest.version),
            arch=arch,
        )

    def validate(self, info: PackageInfo) -> None:
        if not info.name:
            raise PackageValidationError("PACKAGE_NAME_MISSING", self.name)
        if not info.version:
            raise PackageValidationError("PACKAGE_VERSION_MISSING", info.name)
        if not info.arch:
            raise PackageValidationError("PACKAGE_ARCH_UNSUPPORTED", f"{self.name}: {info.manifest.arch!r}")

    def conventional_file_name(self, info: PackageInfo) -> str:
        return self.file_name_template.format(
            name=info.name,
            version=info.version,
            release=info.release,
            arch=info.arch,
            platform=info.manifest.platform,
        )

    def package(self, info: PackageInfo, stream: BinaryIO) -> None:
        raise NotImplementedError


class NfpmPackager(Packager):
    """Delegates archive generation to the ``nfpm`` binary."""

    def __init__(
        self,
        name: str,
        file_name_template: str,
        arches: dict[str, str],
        timeout_seconds: int | None = 300,
    ) -> None:
        self.name = name
        self.file_name_template = file_name_template
        self.arches = arches
        self.timeout_seconds = timeout_seconds

    @property
    def binary(self) -> str:
        return os.getenv("NFPM_BIN") or "nfpm"

    def validate(self, info: PackageInfo) -> None:
        super().validate(info)
        if self.name == "rpm" and "-" in info.version:
            raise PackageValidationError("PACKAGE_VERSION_INVALID", f"rpm versions cannot contain '-': {info.version}")
        if self.name in {"deb", "apk"} and not info.version[0].isdigit():
            raise PackageValidationError(
                "PACKAGE_VERSION_INVALID", f"{self.name} versions must start with a digit: {info.version}"
            )

    def nfpm_config(self, info: PackageInfo) -> dict[str, Any]:
        manifest = info.manifest
        config: dict[str, Any] = {
            "name": manifest.name,
            "arch": manifest.arch,
            "platform": manifest.platform,
            "version": info.version,
            "release": manifest.release,
            "section": manifest.section,
            "maintainer": manifest.maintainer,
            "description": manifest.description,
            "license": manifest.license,
        }
        for relation in ("provides", "depends", "replaces", "recommends", "suggests", "conflicts"):
            values = list(getattr(manifest, relation))
            if values:
                config[relation] = values
        config["contents"] = [
            {"src": entry.source, "dst": entry.destination, "file_info": {"mode": 0o755}}
            for entry in manifest.contents
        ]
        return config

    def package(self, info: PackageInfo, stream: BinaryIO) -> None:
        with tempfile.TemporaryDirectory(prefix="mcfg2rpm-nfpm") as workdir:
            config_path = Path(workdir) / "nfpm.yaml"
            config_path.write_text(yaml.safe_dump(self.nfpm_config(info), sort_keys=False), encoding="utf-8")
            target = Path(workdir) / self.conventional_file_name(info)
            command = [
                self.binary,
                "package",
                "--config",
                str(config_path),
                "--packager",
                self.name,
                "--target",
                str(target),
            ]
            logger.debug("Running %s", " ".join(command))
            try:
                result = subprocess.run(
                    command,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout_seconds,
                    check=False,
                )
            except FileNotFoundError as exc:
                raise PackagerError("NFPM_COMMAND_MISSING", self.binary) from exc
            except subprocess.TimeoutExpired as exc:
                raise PackagerError("NFPM_TIMEOUT", f"{self.timeout_seconds}s") from exc
            if result.returncode != 0:
                output = (result.stderr or result.stdout or "").strip()
                raise PackagerError("NFPM_EXIT_NONZERO", f"exit {result.returncode}: {output[-512:]}")
            if not target.is_file():
                raise PackagerError("NFPM_OUTPUT_MISSING", str(target))
            with target.open("rb") as handle:
                shutil.copyfileobj(handle, stream)


class TarballPackager(Packager):
    """Reproducible gzip'd tarball of the staged tree plus a metadata member."""

    name = "tar"
    file_name_template = "{name}-{version}-{release}.{platform}-{arch}.tar.gz"
    metadata_member = ".PKGINFO.json"

    def package(self, info: PackageInfo, stream: BinaryIO) -> None:
        mtime = int(os.getenv("SOURCE_DATE_EPOCH") or 0)
        metadata = info.manifest.as_dict()
        metadata["version"] = info.version
        metadata["contents"] = [entry.destination for entry in info.manifest.contents]
        with gzip.GzipFile(filename="", mode="wb", fileobj=stream, mtime=mtime) as compressed:
            with tarfile.open(fileobj=compressed, mode="w", format=tarfile.PAX_FORMAT) as tar:
                payload = json.dumps(metadata, sort_keys=True, indent=2).encode("utf-8")
                tar.addfile(_tar_info(self.metadata_member, len(payload), 0o644, mtime), io.BytesIO(payload))
                for entry in info.manifest.contents:
                    data = Path(entry.source).read_bytes()
                    member = _tar_info(entry.destination.lstrip("/"), len(data), 0o755, mtime)
                    tar.addfile(member, io.BytesIO(data))


def _tar_info(name: str, size: int, mode: int, mtime: int) -> tarfile.TarInfo:
    member = tarfile.TarInfo(name=name)
    member.size = size
    member.mode = mode
    member.mtime = mtime
    member.uid = member.gid = 0
    member.uname = member.gname = "root"
    return member


_REGISTRY: dict[str, Packager] = {}


def register_packager(packager: Packager) -> None:
    _REGISTRY[packager.name] = packager


def get_packager(name: str) -> Packager:
    packager = _REGISTRY.get(name)
    if packager is None:
        raise UnknownFormatError("PACKAGE_FORMAT_UNKNOWN", f"{name} (known: {', '.join(registered_formats())})")
    return packager


def registered_formats() -> list[str]:
    return sorted(_REGISTRY)


register_packager(NfpmPackager("rpm", "{name}-{version}-{release}.{arch}.rpm", RPM_ARCHES))
register_packager(NfpmPackager("deb", "{name}_{version}-{release}_{arch}.deb", DEB_ARCHES))
register_packager(NfpmPackager("apk", "{name}_{version}-r{release}_{arch}.apk", APK_ARCHES))
register_packager(TarballPackager())

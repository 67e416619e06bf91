"""Write a package archive for a validated manifest."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from .errors import Mcfg2RpmError, PackageIOError, PackagerError
from .manifest import PackageManifest
from .packagers import get_packager

logger = logging.getLogger(__name__)


def emit(manifest: PackageManifest, format_name: str = "rpm", output_dir: Path | None = None) -> Path:
    packager = get_packager(format_name)
    info = packager.info(manifest)
    packager.validate(info)

    target = Path(output_dir or Path.cwd()) / packager.conventional_file_name(info)
    info = dataclasses.replace(info, target=str(target))
    try:
        handle = target.open("wb")
    except OSError as exc:
        raise PackageIOError("PACKAGE_FILE_CREATE_FAILED", f"{target}: {exc}") from exc

    logger.info("Writing %s to %s", format_name.upper(), target)
    with handle:
        try:
            packager.package(info, handle)
        except Exception as exc:
            handle.close()
            _remove_partial(target)
            if isinstance(exc, Mcfg2RpmError):
                raise
            raise PackagerError("PACKAGE_WRITE_FAILED", f"{target}: {exc}") from exc
    return target


def _remove_partial(target: Path) -> None:
    try:
        target.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Failed to remove partial package %s: %s", target, exc)

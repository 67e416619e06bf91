"""Write translated Ignition files under a staging root."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .dataurl import decode_contents
from .errors import WriteError
from .ignition import FileEntry
from .translator import TranslatedConfig

logger = logging.getLogger(__name__)

DIR_MODE = 0o755
FILE_MODE = 0o755


def staged_path(staging_root: Path, destination: str) -> Path:
    """Join an absolute Ignition path onto the staging root."""
    return Path(staging_root) / destination.lstrip("/")


def materialize(staging_root: Path, translated: TranslatedConfig) -> list[Path]:
    logger.info("Writing ignition files to disk under %s", staging_root)
    return [write_file(staging_root, entry) for entry in translated.files]


def write_file(staging_root: Path, entry: FileEntry) -> Path:
    root = Path(staging_root).resolve()
    full_path = staged_path(root, entry.path)
    if not full_path.resolve().is_relative_to(root) or full_path.resolve() == root:
        raise WriteError("PATH_ESCAPES_STAGING_ROOT", str(full_path))
    _make_ancestors(root, full_path.parent)

    contents = decode_contents(entry.source, entry.compression)

    logger.info("Writing %s", entry.path)
    try:
        full_path.write_bytes(contents)
        os.chmod(full_path, FILE_MODE)
    except OSError as exc:
        raise WriteError("FILE_WRITE_FAILED", str(full_path), str(exc)) from exc
    return full_path


def _make_ancestors(root: Path, directory: Path) -> None:
    """Create missing directories between ``root`` and ``directory``, each 0755."""
    missing = [directory, *directory.parents]
    missing = [path for path in missing[: missing.index(root)] if not path.is_dir()]
    for path in reversed(missing):
        try:
            path.mkdir(mode=DIR_MODE)
            os.chmod(path, DIR_MODE)
        except OSError as exc:
            raise WriteError("DIRECTORY_CREATE_FAILED", str(path), str(exc)) from exc

"""End-to-end conversion: MachineConfig file to package archive."""

from __future__ import annotations

import logging
from pathlib import Path
import tempfile

from .emitter import emit
from .errors import WriteError
from .machine_config import read_machine_config
from .manifest import build_manifest, verify_staged_sources
from .materializer import materialize
from .policy import PackagePolicy
from .translator import WrappedMachineConfig, translate

logger = logging.getLogger(__name__)


def run(
    input_path: Path,
    *,
    policy: PackagePolicy | None = None,
    format_name: str = "rpm",
    output_dir: Path | None = None,
    staging_parent: Path | None = None,
) -> Path:
    """Convert ``input_path`` into a package and return the package path.

    The staging directory exists only after the document validated and is
    removed on every exit path.
    """
    wrapped = WrappedMachineConfig(read_machine_config(Path(input_path)))
    try:
        staging = tempfile.TemporaryDirectory(prefix="mcfg2rpm", dir=staging_parent)
    except OSError as exc:
        raise WriteError("STAGING_ROOT_CREATE_FAILED", str(staging_parent or tempfile.gettempdir()), str(exc)) from exc
    try:
        staging_root = Path(staging.name)
        materialize(staging_root, translate(wrapped))
        manifest = build_manifest(wrapped, staging_root, policy)
        verify_staged_sources(manifest)
        return emit(manifest, format_name, output_dir)
    finally:
        logger.info("Removing temp dir %s", staging.name)
        staging.cleanup()

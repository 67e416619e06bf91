"""Package metadata policy profile."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict

from .errors import PolicyError

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class PackagePolicy(BaseModel):
    """Fixed package identity and relationship defaults.

    Nothing here is derived from the machine config except the package name.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = "v1.0.0"
    release: str = "1"
    arch: str = "amd64"
    platform: str = "linux"
    section: str = "default"
    maintainer: str = "mcfg2rpm <root@localhost>"
    description: str = "Files rendered from a MachineConfig"
    license: str = "Apache-2.0"
    provides: tuple[str, ...] = ("bar",)
    depends: tuple[str, ...] = ("foo", "bar")
    replaces: tuple[str, ...] = ("foobar",)
    recommends: tuple[str, ...] = ("whatever",)
    suggests: tuple[str, ...] = ("something-else",)
    conflicts: tuple[str, ...] = ("not-foo", "not-bar")


def _expand_str(value: str) -> str:
    def replacer(match: re.Match[str]) -> str:
        token = match.group(1)
        if ":-" in token:
            key, default = token.split(":-", 1)
            actual = os.getenv(key, "")
            return actual if actual.strip() else default
        actual = os.getenv(token, "")
        if not actual.strip():
            raise PolicyError("POLICY_ENV_MISSING", token)
        return actual

    return _VAR_PATTERN.sub(replacer, value)


def _expand_payload(value: Any) -> Any:
    if isinstance(value, str):
        return _expand_str(value)
    if isinstance(value, list):
        return [_expand_payload(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _expand_payload(item) for key, item in value.items()}
    return value


def load_policy(path: Path) -> PackagePolicy:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PolicyError("POLICY_UNREADABLE", f"{path}: {exc}") from exc
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise PolicyError("POLICY_PARSE_FAILED", f"{path}: {exc}") from exc
    if not isinstance(data, dict):
        raise PolicyError("POLICY_PARSE_FAILED", f"{path}: top-level value must be a mapping")
    expanded = _expand_payload(data)
    try:
        return PackagePolicy(**expanded)
    except pydantic.ValidationError as exc:
        raise PolicyError("POLICY_INVALID", f"{path}: {exc}") from exc

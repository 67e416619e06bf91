"""MachineConfig document model, reader and validation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, Field

from .errors import IgnitionError, ParseError, ReadError, ValidationError
from .ignition import parse_config

logger = logging.getLogger(__name__)

KERNEL_TYPES = frozenset({"", "default", "realtime", "64k-pages"})
SUPPORTED_EXTENSIONS = frozenset(
    {
        "two-node-ha",
        "wasm",
        "ipsec",
        "usbguard",
        "kerberos",
        "kernel-devel",
        "sandboxed-containers",
        "sysstat",
    }
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class ObjectMeta(_Frozen):
    name: Optional[str] = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class MachineConfigSpec(_Frozen):
    config: Optional[dict[str, Any]] = None
    kernel_arguments: list[str] = Field(default_factory=list, alias="kernelArguments")
    kernel_type: str = Field(default="", alias="kernelType")
    extensions: list[str] = Field(default_factory=list)
    fips: bool = False
    os_image_url: str = Field(default="", alias="osImageURL")


class MachineConfig(_Frozen):
    api_version: str = Field(default="machineconfiguration.openshift.io/v1", alias="apiVersion")
    kind: str = "MachineConfig"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: MachineConfigSpec = Field(default_factory=MachineConfigSpec)

    @property
    def name(self) -> str:
        return self.metadata.name or ""

    @property
    def raw_config(self) -> bytes:
        """The embedded Ignition payload as JSON bytes (empty when absent)."""
        if self.spec.config is None:
            return b""
        return json.dumps(self.spec.config, sort_keys=True, separators=(",", ":")).encode("utf-8")


def read_machine_config(path: Path) -> MachineConfig:
    """Read and validate the first MachineConfig document found in ``path``.

    Later documents of a multi-document YAML file are ignored.
    """
    logger.info("Reading machine config from: %s", path)
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ReadError("MACHINE_CONFIG_UNREADABLE", f"{path}: {exc}") from exc
    config = parse_machine_config(text, source=str(path))
    validate_machine_config(config)
    logger.info("Machine config %s validated", config.name)
    return config


def parse_machine_config(text: str, *, source: str = "<input>") -> MachineConfig:
    try:
        data = _first_document(text)
    except yaml.YAMLError as exc:
        raise ParseError("MACHINE_CONFIG_YAML_INVALID", f"{source}: {exc}") from exc
    if data is None:
        raise ParseError("MACHINE_CONFIG_EMPTY", source)
    if not isinstance(data, dict):
        raise ParseError("MACHINE_CONFIG_NOT_MAPPING", source)
    try:
        return MachineConfig.model_validate(data)
    except pydantic.ValidationError as exc:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in exc.errors())
        raise ParseError("MACHINE_CONFIG_FIELD_INVALID", f"{source}: {fields}") from exc


def validate_machine_config(config: MachineConfig) -> None:
    if not config.metadata.name:
        raise ValidationError("MACHINE_CONFIG_INVALID", "metadata.name is required")
    spec = config.spec
    if spec.kernel_type not in KERNEL_TYPES:
        raise ValidationError("MACHINE_CONFIG_INVALID", f"spec.kernelType {spec.kernel_type!r} is not supported")
    unsupported = sorted(set(spec.extensions) - SUPPORTED_EXTENSIONS)
    if unsupported:
        raise ValidationError("MACHINE_CONFIG_INVALID", f"spec.extensions not supported: {', '.join(unsupported)}")
    if spec.config is None:
        raise ValidationError("MACHINE_CONFIG_INVALID", "spec.config is required")
    try:
        parse_config(config.raw_config)
    except IgnitionError as exc:
        raise ValidationError("MACHINE_CONFIG_INVALID", f"spec.config: {exc}") from exc


def _first_document(text: str) -> Any:
    for document in yaml.safe_load_all(text):
        return document
    return None

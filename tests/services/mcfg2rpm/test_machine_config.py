from __future__ import annotations

import json
from pathlib import Path

import pydantic
import pytest

from mcfg2rpm.errors import ParseError, ReadError, ValidationError
from mcfg2rpm.machine_config import read_machine_config

EXAMPLE = """\
apiVersion: machineconfiguration.openshift.io/v1
kind: MachineConfig
metadata:
  name: example
  labels:
    machineconfiguration.openshift.io/role: worker
spec:
  kernelType: default
  extensions: [usbguard]
  config:
    ignition:
      version: 3.2.0
    storage:
      files:
        - path: /etc/foo.conf
          contents:
            source: "data:,hello"
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "machine-config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_reads_and_validates_machine_config(tmp_path: Path) -> None:
    config = read_machine_config(_write(tmp_path, EXAMPLE))
    assert config.name == "example"
    assert config.metadata.labels == {"machineconfiguration.openshift.io/role": "worker"}
    assert config.spec.kernel_type == "default"
    raw = json.loads(config.raw_config)
    assert raw["storage"]["files"][0]["path"] == "/etc/foo.conf"


def test_only_first_document_is_used(tmp_path: Path) -> None:
    second = EXAMPLE.replace("name: example", "name: ignored")
    config = read_machine_config(_write(tmp_path, EXAMPLE + "---\n" + second))
    assert config.name == "example"


def test_machine_config_is_immutable(tmp_path: Path) -> None:
    config = read_machine_config(_write(tmp_path, EXAMPLE))
    with pytest.raises(pydantic.ValidationError):
        config.metadata.name = "changed"


def test_missing_file_is_read_error(tmp_path: Path) -> None:
    with pytest.raises(ReadError) as excinfo:
        read_machine_config(tmp_path / "absent.yaml")
    assert excinfo.value.code == "MACHINE_CONFIG_UNREADABLE"
    assert "absent.yaml" in str(excinfo.value)


@pytest.mark.parametrize(
    ("text", "code"),
    [
        ("metadata: [unclosed\n", "MACHINE_CONFIG_YAML_INVALID"),
        ("", "MACHINE_CONFIG_EMPTY"),
        ("- just\n- a list\n", "MACHINE_CONFIG_NOT_MAPPING"),
        ("metadata: not-a-mapping\n", "MACHINE_CONFIG_FIELD_INVALID"),
    ],
)
def test_unparseable_documents(tmp_path: Path, text: str, code: str) -> None:
    with pytest.raises(ParseError) as excinfo:
        read_machine_config(_write(tmp_path, text))
    assert excinfo.value.code == code


def test_field_errors_name_the_field(tmp_path: Path) -> None:
    with pytest.raises(ParseError) as excinfo:
        read_machine_config(_write(tmp_path, EXAMPLE.replace("extensions: [usbguard]", "extensions: 7")))
    assert "spec.extensions" in str(excinfo.value)


@pytest.mark.parametrize(
    ("old", "new", "field"),
    [
        ("  name: example\n", "", "metadata.name"),
        ("kernelType: default", "kernelType: bogus", "spec.kernelType"),
        ("extensions: [usbguard]", "extensions: [not-an-extension]", "spec.extensions"),
        ("version: 3.2.0", "version: 9.9.9", "spec.config"),
    ],
)
def test_validation_names_failing_field(tmp_path: Path, old: str, new: str, field: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        read_machine_config(_write(tmp_path, EXAMPLE.replace(old, new)))
    assert field in str(excinfo.value)


def test_missing_config_payload_is_invalid(tmp_path: Path) -> None:
    text = EXAMPLE.split("  config:\n", 1)[0]
    with pytest.raises(ValidationError) as excinfo:
        read_machine_config(_write(tmp_path, text))
    assert "spec.config is required" in str(excinfo.value)

"""MachineConfig wrapper with an explicit cache of the translated Ignition files."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable

from .errors import Mcfg2RpmError, TranslateError
from .ignition import IgnitionConfig, parse_and_convert_config
from .machine_config import MachineConfig

logger = logging.getLogger(__name__)

TranslatedConfig = IgnitionConfig
Converter = Callable[[bytes], IgnitionConfig]


@dataclass
class WrappedMachineConfig:
    machine_config: MachineConfig
    translated: TranslatedConfig | None = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return self.machine_config.name


def translate(wrapped: WrappedMachineConfig, converter: Converter = parse_and_convert_config) -> TranslatedConfig:
    """Return the translated config, converting and caching it on first use.

    This is the only writer of ``wrapped.translated``. Not safe for concurrent
    callers sharing one wrapper.
    """
    if wrapped.translated is not None:
        return wrapped.translated
    logger.info("Parsing ignition config from machine config %s", wrapped.name)
    try:
        translated = converter(wrapped.machine_config.raw_config)
    except Mcfg2RpmError as exc:
        raise TranslateError(exc.code, exc.detail) from exc
    except Exception as exc:
        raise TranslateError("IGNITION_CONVERSION_FAILED", str(exc)) from exc
    wrapped.translated = translated
    return translated

"""mcfg2rpm error taxonomy and helpers."""

from __future__ import annotations


class Mcfg2RpmError(RuntimeError):
    """Stable error surfaced to the CLI as a reason code plus detail."""

    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        message = f"{code}:{detail}" if detail else code
        super().__init__(message)


# Configuration loading.
class ReadError(Mcfg2RpmError):
    pass


class ParseError(Mcfg2RpmError):
    pass


class ValidationError(Mcfg2RpmError):
    pass


class PolicyError(Mcfg2RpmError):
    pass


# Ignition payload and file contents.
class IgnitionError(Mcfg2RpmError):
    pass


class DecodeError(Mcfg2RpmError):
    pass


class WriteError(Mcfg2RpmError):
    def __init__(self, code: str, path: str, detail: str | None = None) -> None:
        self.path = path
        super().__init__(code, f"{path}: {detail}" if detail else path)


# Manifest building.
class TranslateError(Mcfg2RpmError):
    pass


class ManifestValidationError(Mcfg2RpmError):
    pass


# Package emission.
class UnknownFormatError(Mcfg2RpmError):
    pass


class PackageValidationError(Mcfg2RpmError):
    pass


class PackageIOError(Mcfg2RpmError):
    pass


class PackagerError(Mcfg2RpmError):
    pass


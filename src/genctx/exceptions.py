from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class GenctxError(Exception):
    """Base exception for errors in the genctx package."""


@dataclass(frozen=True)
class DiscoveryError(GenctxError):
    """Raised when the glob engine cannot enumerate the project files."""

    root: Path
    reason: str
    message: str = "File discovery failed."


@dataclass(frozen=True)
class FileAccessError(GenctxError):
    """Raised when a candidate file cannot be stat'd or read."""

    file: Path
    reason: str


@dataclass(frozen=True)
class ConfigurationError(GenctxError):
    """Raised when a persisted configuration file cannot be used."""

    file: Path
    reason: str
    message: str = "The configuration file is malformed."


@dataclass(frozen=True)
class OutputWriteError(GenctxError):
    """Raised when the context document cannot be written."""

    file: Path
    reason: str
    message: str = "Could not write the context document."

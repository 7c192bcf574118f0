from __future__ import annotations


class BBGtError(Exception):
    """Base class for every error raised by the bbgt helpers."""


class NotFoundError(BBGtError, FileNotFoundError):
    """An annotation file that should be loaded does not exist."""


class UnsupportedVersionError(BBGtError, ValueError):
    """The annotation header declares a format version we cannot parse."""

    def __init__(self, version: int, path=None):
        location = f" in {path}" if path is not None else ""
        super().__init__(f"Unknown bbGt annotation version {version}{location}")
        self.version = version
        self.path = path


class ConfigError(BBGtError, ValueError):
    """A parameter set is missing a required entry or carries an unknown one."""


class DimensionMismatch(BBGtError, ValueError):
    """Feature width of the query data disagrees with the trained model."""

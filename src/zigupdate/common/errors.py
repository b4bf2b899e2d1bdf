from __future__ import annotations


class ZigUpdateError(Exception):
    """Base class for every failure that aborts a run."""


class ParseError(ZigUpdateError, ValueError):
    pass


class ResolutionError(ZigUpdateError, LookupError):
    pass


class IntegrityError(ZigUpdateError, RuntimeError):
    pass


class ExternalToolError(ZigUpdateError, RuntimeError):
    pass


class FilesystemError(ZigUpdateError, OSError):
    pass


class UntrustedSourceError(ZigUpdateError, ValueError):
    pass


class ConfigError(ZigUpdateError, ValueError):
    pass

"""Core types: results, exit codes, configuration."""

from .config import (
    ConfigError,
    ConfigLayers,
    ReleaseConfig,
    VersionFileSpec,
    get_config,
    get_version_files_config,
    load_config,
)
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # config
    "ConfigError",
    "ConfigLayers",
    "ReleaseConfig",
    "VersionFileSpec",
    "get_config",
    "get_version_files_config",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]

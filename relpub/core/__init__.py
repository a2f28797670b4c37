"""Core types: results, exit codes and configuration."""

from .config import (
    BotIdentity,
    Config,
    ConfigError,
    FormulaConfig,
    InstallerConfig,
    PublishConfig,
    ReleaseConfig,
    load_config,
)
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # config
    "BotIdentity",
    "Config",
    "ConfigError",
    "FormulaConfig",
    "InstallerConfig",
    "PublishConfig",
    "ReleaseConfig",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]

"""Core types: results, exit codes, configuration and the credential cache."""

from .cache import CacheError, CacheKey, CacheStore
from .config import Config, ConfigError, load_config
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # cache
    "CacheError",
    "CacheKey",
    "CacheStore",
    # config
    "Config",
    "ConfigError",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]

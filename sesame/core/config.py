"""Process-wide configuration.

`Config` is built once at process start (see `load_config`) and passed by
reference to every component that needs it. Nothing in sesame reads
environment variables after this point.

Sources, lowest to highest precedence:
- built-in defaults
- `<home>/config.toml`
- environment (`SESAME_HOME`/`CLI_HOME`, `SESAME_DEBUG`/`LOG_LEVEL`,
  `SESAME_BUILD_SERVER`, `SESAME_API_URL`)

Example config.toml:

    debug = true

    [build]
    server = "http://build.example.com:7001"
    api = "http://build.example.com:7001"
    connect_timeout = 5

    [git]
    remote = "origin"
    release_branch = "master"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_float, get_str, get_table

__all__ = [
    "Config",
    "ConfigError",
    "DEFAULT_BUILD_SERVER",
    "DEFAULT_CLI_HOME",
    "DEFAULT_CONNECT_TIMEOUT_SECONDS",
    "load_config",
]

DEFAULT_CLI_HOME = ".sesame-cli"
DEFAULT_BUILD_SERVER = "http://localhost:7001"
DEFAULT_CONNECT_TIMEOUT_SECONDS = 5.0
DEFAULT_REMOTE = "origin"
DEFAULT_RELEASE_BRANCH = "master"

CONFIG_FILE_NAME = "config.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class Config:
    """Explicit runtime configuration.

    Attributes:
        home_dir: Cache directory holding credentials and config.toml.
        debug: Render verbose console output.
        build_server_url: Socket.IO endpoint of the build service.
        api_base_url: REST endpoint of the build service (artifact queries).
        connect_timeout_seconds: Build session connect timeout.
        remote_name: Git remote used for every pull/push/ls-remote.
        release_branch: Branch development branches are promoted into.
    """

    home_dir: Path
    debug: bool = False
    build_server_url: str = DEFAULT_BUILD_SERVER
    api_base_url: str = DEFAULT_BUILD_SERVER
    connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS
    remote_name: str = DEFAULT_REMOTE
    release_branch: str = DEFAULT_RELEASE_BRANCH

    @property
    def config_path(self) -> Path:
        return self.home_dir / CONFIG_FILE_NAME

    def merge_file(self, data: Mapping[str, object]) -> Config:
        """Return a copy with values from a parsed config.toml applied."""
        build: StrDict = get_table(data, "build") or {}
        git: StrDict = get_table(data, "git") or {}

        debug = get_bool(data, "debug")
        server = get_str(build, "server")
        timeout = get_float(build, "connect_timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError("build.connect_timeout must be positive")

        return replace(
            self,
            debug=self.debug if debug is None else debug,
            build_server_url=server or self.build_server_url,
            api_base_url=get_str(build, "api") or server or self.api_base_url,
            connect_timeout_seconds=timeout or self.connect_timeout_seconds,
            remote_name=get_str(git, "remote") or self.remote_name,
            release_branch=get_str(git, "release_branch") or self.release_branch,
        )

    def merge_env(self, env: Mapping[str, str]) -> Config:
        """Return a copy with environment overrides applied."""
        debug = self.debug
        if env.get("SESAME_DEBUG", "").strip() in {"1", "true", "yes"}:
            debug = True
        if env.get("LOG_LEVEL", "").strip().lower() == "verbose":
            debug = True

        server = env.get("SESAME_BUILD_SERVER", "").strip()
        api = env.get("SESAME_API_URL", "").strip()
        return replace(
            self,
            debug=debug,
            build_server_url=server or self.build_server_url,
            api_base_url=api or server or self.api_base_url,
        )


def resolve_home_dir(env: Mapping[str, str], user_home: Path) -> Path:
    """Resolve the cache directory.

    `SESAME_HOME` is used as-is; `CLI_HOME` is relative to the user home.
    """
    explicit = env.get("SESAME_HOME", "").strip()
    if explicit:
        return Path(explicit).expanduser()
    relative = env.get("CLI_HOME", "").strip()
    if relative:
        return user_home / relative
    return user_home / DEFAULT_CLI_HOME


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
    except FileNotFoundError:
        return Ok({})
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except OSError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    try:
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Invalid UTF-8 in config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(
    *,
    env: Mapping[str, str],
    user_home: Path,
    debug: bool = False,
) -> Result[Config, ConfigError]:
    """Build the configuration for this process.

    Args:
        env: Environment mapping (normally `os.environ`).
        user_home: The user's home directory.
        debug: Force verbose output (CLI `--debug`).

    Returns:
        Ok(Config) on success, Err(ConfigError) if config.toml is invalid.
    """
    config = Config(home_dir=resolve_home_dir(env, user_home))

    parsed = _parse_toml(config.config_path)
    if isinstance(parsed, Err):
        return parsed

    try:
        config = config.merge_file(parsed.value)
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=config.config_path))

    config = config.merge_env(env)
    if debug:
        config = replace(config, debug=True)
    return Ok(config)

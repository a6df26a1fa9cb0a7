"""Helpers for resolving configuration files and runtime settings."""

import json
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from transcripts.settings import FetchSettings, ShareLinkSettings

DEFAULT_CONFIG_NAME = "config.json"
CONFIG_ENV_VAR = "SHARE_SAVER_CONFIG"
FETCH_STRATEGIES = ("api", "browser")


class ConfigError(Exception):
    """Raised when runtime configuration cannot be loaded."""


class ConfigNotFoundError(ConfigError):
    """Raised when no configuration file exists at the resolved path."""


@dataclass(slots=True, frozen=True)
class RuntimeSettings:
    """Everything the CLI needs to validate, fetch, and save transcripts."""

    link: ShareLinkSettings = field(default_factory=ShareLinkSettings)
    fetch: FetchSettings = field(default_factory=FetchSettings)
    output_dir: str = field(default_factory=os.getcwd)


def _resolve_config_path(path: Optional[str]) -> str:
    """Return the absolute config path, honoring overrides and defaults."""
    env_override = os.environ.get(CONFIG_ENV_VAR)
    candidate = path or env_override or DEFAULT_CONFIG_NAME
    expanded = os.path.expanduser(candidate)
    if os.path.isabs(expanded) and os.path.isfile(expanded):
        return expanded

    search_roots = [os.getcwd(), os.path.dirname(os.path.abspath(__file__))]
    for root in search_roots:
        resolved = os.path.abspath(os.path.join(root, expanded))
        if os.path.isfile(resolved):
            return resolved

    raise ConfigNotFoundError(f"Configuration file not found: {candidate}")


def _resolve_path(value: str, base_dir: str) -> str:
    """Resolve ``value`` into an absolute path relative to ``base_dir``."""
    expanded = os.path.expanduser(value)
    if os.path.isabs(expanded):
        return expanded
    return os.path.abspath(os.path.join(base_dir, expanded))


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load a JSON config file and normalize any filesystem paths."""
    config_path = _resolve_config_path(path)
    try:
        with open(config_path, "r", encoding="utf-8") as config_file:
            data = json.load(config_file)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration root must be an object: {config_path}"
        )

    base_dir = os.path.dirname(config_path)
    resolved: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str) and key.endswith(("_dir", "_path")):
            resolved[key] = _resolve_path(value, base_dir)
        else:
            resolved[key] = value

    return resolved


def _string(config: Dict[str, Any], key: str, default: str) -> str:
    value = config.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty string.")
    return value.strip()


def _number(config: Dict[str, Any], key: str, default: float) -> float:
    value = config.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number.")
    if value <= 0:
        raise ConfigError(f"{key} must be greater than zero.")
    return float(value)


def _share_hosts(config: Dict[str, Any]) -> ShareLinkSettings:
    hosts = config.get("share_hosts")
    if hosts is None:
        return ShareLinkSettings()
    if not isinstance(hosts, list) or not all(
        isinstance(host, str) and host.strip() for host in hosts
    ):
        raise ConfigError("share_hosts must be a list of host names.")
    if not hosts:
        raise ConfigError("share_hosts must not be empty.")
    return ShareLinkSettings(
        hosts=tuple(host.strip().lower() for host in hosts)
    )


def _fetch_settings(config: Dict[str, Any]) -> FetchSettings:
    defaults = FetchSettings()

    endpoint = _string(config, "api_endpoint", defaults.api_endpoint)
    page_url = _string(config, "page_url", defaults.page_url)
    for key, template in (("api_endpoint", endpoint), ("page_url", page_url)):
        if "{share_id}" not in template:
            raise ConfigError(
                f"{key} must contain a {{share_id}} placeholder."
            )

    proxy_prefix = config.get("proxy_prefix")
    if proxy_prefix is not None and not isinstance(proxy_prefix, str):
        raise ConfigError("proxy_prefix must be a string or null.")

    max_retries = config.get("max_retries", defaults.max_retries)
    if isinstance(max_retries, bool) or not isinstance(max_retries, int):
        raise ConfigError("max_retries must be an integer.")
    if max_retries < 0:
        raise ConfigError("max_retries must not be negative.")

    strategy = config.get("fetch_strategy", defaults.strategy)
    if strategy not in FETCH_STRATEGIES:
        raise ConfigError(
            f"fetch_strategy must be one of {', '.join(FETCH_STRATEGIES)}."
        )

    return FetchSettings(
        api_endpoint=endpoint,
        page_url=page_url,
        proxy_prefix=proxy_prefix or None,
        timeout_seconds=_number(
            config, "timeout_seconds", defaults.timeout_seconds
        ),
        max_retries=max_retries,
        user_agent=_string(config, "user_agent", defaults.user_agent),
        strategy=strategy,
    )


def load_runtime_settings(path: Optional[str] = None) -> RuntimeSettings:
    """Build runtime settings from config, falling back to defaults.

    A missing default ``config.json`` is not an error; a missing file that
    was explicitly requested (argument or environment) is.
    """
    try:
        config = load_config(path)
    except ConfigNotFoundError:
        if path or os.environ.get(CONFIG_ENV_VAR):
            raise
        return RuntimeSettings()

    output_dir = config.get("output_dir") or os.getcwd()
    if not isinstance(output_dir, str):
        raise ConfigError("output_dir must be a string.")

    return RuntimeSettings(
        link=_share_hosts(config),
        fetch=_fetch_settings(config),
        output_dir=output_dir,
    )


def resolve_runtime_settings(
    *,
    config_path: Optional[str] = None,
    output_dir: Optional[str] = None,
    strategy: Optional[str] = None,
) -> RuntimeSettings:
    """Resolve runtime settings by combining CLI overrides with config."""
    settings = load_runtime_settings(config_path)

    if strategy is not None:
        if strategy not in FETCH_STRATEGIES:
            raise ConfigError(f"Unknown fetch strategy: {strategy}")
        settings = replace(
            settings, fetch=replace(settings.fetch, strategy=strategy)
        )

    if output_dir:
        settings = replace(
            settings, output_dir=_resolve_path(output_dir, os.getcwd())
        )

    return settings

"""Runtime settings resolved from the YAML config and environment overrides."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Optional

from .config_loader import load_config
from .core.exceptions import ConfigurationError

logger = logging.getLogger("chatbridge")

DEFAULT_UPSTREAM_URL = "https://api.openai.com/v1/responses"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
DEFAULT_TIMEOUT_SECONDS = 60.0

_RESPONSES_SUFFIX = re.compile(r"(/v1)?/responses.*$")


@dataclass(frozen=True)
class BridgeSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    upstream_url: str = DEFAULT_UPSTREAM_URL
    api_key: str = ""
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    enable_responses_passthrough: bool = True
    cors_allow_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @property
    def models_url(self) -> str:
        return derive_models_url(self.upstream_url)


def derive_models_url(upstream_url: str) -> str:
    """Derive the models listing URL from the Responses endpoint URL.

    ``https://host/v1/responses`` and ``https://host/responses`` both map to
    ``https://host/v1/models``.
    """
    base = _RESPONSES_SUFFIX.sub("", upstream_url.split("?", 1)[0]).rstrip("/")
    return f"{base}/v1/models"


def _get(cfg: dict, *keys: str):
    cur = cfg
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _to_int(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _to_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_bool(value) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return None


def _to_origins(value) -> Optional[tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    elif isinstance(value, list):
        items = [str(item).strip() for item in value if item is not None]
    else:
        return None
    origins = tuple(item for item in items if item)
    return origins or None


def load_settings(config: Optional[dict] = None) -> BridgeSettings:
    """Build settings from a config mapping plus environment overrides.

    Args:
        config: Parsed configuration. When omitted the default config file is
            loaded; a missing or invalid file falls back to built-in defaults.
    """
    cfg: dict = {}
    if config is not None:
        cfg = config
    else:
        try:
            cfg = load_config()
        except ConfigurationError as exc:
            logger.warning("Failed to load config; using defaults. (%s)", exc)

    host = _to_str(_get(cfg, "proxy_settings", "server", "host")) or DEFAULT_HOST
    port = _to_int(_get(cfg, "proxy_settings", "server", "port")) or DEFAULT_PORT
    upstream_url = _to_str(_get(cfg, "upstream", "url")) or DEFAULT_UPSTREAM_URL
    api_key = _to_str(_get(cfg, "upstream", "api_key")) or ""
    timeout_seconds = _to_float(_get(cfg, "upstream", "timeout"))
    if timeout_seconds is None or timeout_seconds <= 0:
        timeout_seconds = DEFAULT_TIMEOUT_SECONDS

    passthrough = _to_bool(_get(cfg, "proxy_settings", "enable_responses_passthrough"))
    if passthrough is None:
        passthrough = True
    origins = _to_origins(_get(cfg, "proxy_settings", "cors_allow_origins")) or ("*",)
    log_level = _to_str(_get(cfg, "proxy_settings", "log_level")) or "INFO"

    # Env overrides
    host = os.getenv("CHATBRIDGE_HOST", host)
    port_env = os.getenv("CHATBRIDGE_PORT")
    if port_env is not None:
        parsed_port = _to_int(port_env)
        if parsed_port is None:
            logger.warning("Invalid CHATBRIDGE_PORT=%s", port_env)
        else:
            port = parsed_port
    upstream_url = os.getenv("TARGET_URL") or upstream_url
    api_key = os.getenv("OPENAI_API_KEY") or api_key
    log_level = os.getenv("CHATBRIDGE_LOG_LEVEL") or log_level

    return BridgeSettings(
        host=host,
        port=port,
        upstream_url=upstream_url,
        api_key=api_key,
        timeout_seconds=timeout_seconds,
        enable_responses_passthrough=passthrough,
        cors_allow_origins=origins,
        log_level=log_level.upper(),
    )

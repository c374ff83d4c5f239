"""Centralized configuration loading for ndots_webhook.

This module loads configuration from an optional JSON file with environment
variable fallbacks and default values. Nested keys map to environment
variables by upper-casing and joining them with underscores, so
``["ndots", "value"]`` falls back to ``NDOTS_VALUE`` and
``["tls", "cert_path"]`` to ``TLS_CERT_PATH``.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

from ndots_webhook.core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"

DEFAULT_NAMESPACE_EXCLUDE = ("kube-system", "kube-public", "kube-node-lease")

VALID_ANNOTATION_MODES = {"always", "opt-in", "opt-out"}


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from JSON file.

    Returns empty dict if file doesn't exist or is invalid.

    Args:
        config_path: Path to config.json file (default: "config.json")

    Returns:
        Configuration dictionary, or empty dict if file not found/invalid
    """
    path = Path(config_path)

    if not path.exists():
        return {}

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        return {}

    return data if isinstance(data, dict) else {}


def get_config_value(
    keys: List[str], default: Any = None, config: Optional[Dict[str, Any]] = None
) -> Any:
    """Get nested configuration value with fallback to environment variable.

    Supports nested keys like ["tls", "cert_path"] or ["metrics", "port"].
    Also checks environment variables as fallback (e.g., TLS_CERT_PATH for
    tls.cert_path).

    Args:
        keys: List of keys to traverse (e.g., ["annotation", "mode"])
        default: Default value if key not found
        config: Optional config dict (uses load_config() if not provided)

    Returns:
        Configuration value, or default if not found
    """
    if config is None:
        config = load_config()

    value = config
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key)
            if value is None:
                break
        else:
            value = None
            break

    if value is not None:
        return value

    env_key = "_".join(k.upper() for k in keys)
    env_value = os.environ.get(env_key)
    if env_value:
        return env_value

    return default


def split_names(value: Any) -> List[str]:
    """Normalize a namespace list from config or environment.

    Accepts a JSON list or a comma-separated string. Entries are trimmed and
    blanks are dropped.
    """
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = [str(v) for v in value]
    return [p.strip() for p in parts if p.strip()]


def _as_int(keys: List[str], default: int, config: Dict[str, Any]) -> int:
    raw = get_config_value(keys, default=default, config=config)
    try:
        if isinstance(raw, float) and not raw.is_integer():
            raise ValueError(raw)
        return int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer value {raw!r} for {'.'.join(keys)}")
        return default


def _as_float(keys: List[str], default: float, config: Dict[str, Any]) -> float:
    raw = get_config_value(keys, default=default, config=config)
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric value {raw!r} for {'.'.join(keys)}")
        return default


@dataclass(frozen=True)
class WebhookConfig:
    """Process configuration for the webhook.

    Built once at startup and never mutated. The engine only sees the policy
    fields; the rest configures transport, logging and metrics.

    Attributes:
        port: HTTPS port for the admission endpoint
        ndots_value: Desired ndots value (0-15)
        annotation_key: Annotation consulted on Pods and Namespaces
        annotation_mode: "always", "opt-in" or "opt-out"
        namespace_include: If non-empty, only these namespaces are mutated
        namespace_exclude: Namespaces never mutated (wins over include)
        tls_cert_path: Serving certificate path
        tls_key_path: Serving key path
        timeout: Request timeout in seconds (HTTP keep-alive and API reads)
        log_level: debug, info, warn or error
        log_format: json or text
        metrics_port: Port for the Prometheus /metrics endpoint
    """

    port: int = 8443
    ndots_value: int = 2
    annotation_key: str = "change-ndots"
    annotation_mode: str = "opt-out"
    namespace_include: FrozenSet[str] = field(default_factory=frozenset)
    namespace_exclude: FrozenSet[str] = field(
        default_factory=lambda: frozenset(DEFAULT_NAMESPACE_EXCLUDE)
    )
    tls_cert_path: str = "/certs/tls.crt"
    tls_key_path: str = "/certs/tls.key"
    timeout: float = 10.0
    log_level: str = "info"
    log_format: str = "json"
    metrics_port: int = 8080

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "WebhookConfig":
        """Build a WebhookConfig from a config dict and the environment.

        Args:
            config: Parsed config file contents (may be empty)

        Returns:
            WebhookConfig with file values, then env values, then defaults
        """
        defaults = cls()
        return cls(
            port=_as_int(["port"], defaults.port, config),
            ndots_value=_as_int(["ndots", "value"], defaults.ndots_value, config),
            annotation_key=str(
                get_config_value(["annotation", "key"], defaults.annotation_key, config)
            ),
            annotation_mode=str(
                get_config_value(["annotation", "mode"], defaults.annotation_mode, config)
            ).strip().lower(),
            namespace_include=frozenset(
                split_names(get_config_value(["namespace", "include"], None, config))
            ),
            namespace_exclude=frozenset(
                split_names(
                    get_config_value(
                        ["namespace", "exclude"], list(DEFAULT_NAMESPACE_EXCLUDE), config
                    )
                )
            ),
            tls_cert_path=str(
                get_config_value(["tls", "cert_path"], defaults.tls_cert_path, config)
            ),
            tls_key_path=str(
                get_config_value(["tls", "key_path"], defaults.tls_key_path, config)
            ),
            timeout=_as_float(["timeout"], defaults.timeout, config),
            log_level=str(get_config_value(["log", "level"], defaults.log_level, config)),
            log_format=str(get_config_value(["log", "format"], defaults.log_format, config)),
            metrics_port=_as_int(["metrics", "port"], defaults.metrics_port, config),
        )

    def validate(self) -> None:
        """Check value ranges and required settings.

        Raises:
            ConfigError: On the first invalid setting found
        """
        if not 1 <= self.port <= 65535:
            raise ConfigError("port must be between 1 and 65535")
        if not 1 <= self.metrics_port <= 65535:
            raise ConfigError("metrics port must be between 1 and 65535")
        if not 0 <= self.ndots_value <= 15:
            raise ConfigError("ndots value must be between 0 and 15")
        if self.annotation_mode not in VALID_ANNOTATION_MODES:
            raise ConfigError("annotation mode must be 'always', 'opt-in', or 'opt-out'")
        if not self.tls_cert_path:
            raise ConfigError("tls cert path is required")
        if not self.tls_key_path:
            raise ConfigError("tls key path is required")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")

    def to_log_dict(self) -> Dict[str, Any]:
        """Return the effective configuration as a loggable dict."""
        return {
            "ndots_value": self.ndots_value,
            "annotation_key": self.annotation_key,
            "annotation_mode": self.annotation_mode,
            "namespace_include": sorted(self.namespace_include),
            "namespace_exclude": sorted(self.namespace_exclude),
            "port": self.port,
            "tls_cert_path": self.tls_cert_path,
            "tls_key_path": self.tls_key_path,
            "timeout": self.timeout,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "metrics_port": self.metrics_port,
        }


def load_webhook_config(config_path: str = DEFAULT_CONFIG_PATH) -> WebhookConfig:
    """Load and validate the webhook configuration.

    Args:
        config_path: Optional JSON config file; missing files are fine

    Returns:
        Validated WebhookConfig

    Raises:
        ConfigError: If any setting is out of range
    """
    cfg = WebhookConfig.from_dict(load_config(config_path))
    cfg.validate()
    return cfg

"""
Configuration management for Courier.

Loads YAML configuration from file with sensible defaults and validation.
Supports environment variable substitution using ${ENV_VAR} syntax.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from courier.exceptions import InvalidConfigurationError
from courier.logging_config import get_logger

logger = get_logger(__name__)


DEFAULT_AUTH_FAILURE_CODES = [
    "EXTERNAL_DEVICE_AUTHENTICATION_FAILED",
    "AUTHENTICATION_FAILED",
]

OFFLINE_POLICIES = ("drop", "fail")


def _expand_env_vars(value: Any) -> Any:
    """
    Recursively expand environment variables in configuration values.

    Supports ${ENV_VAR} syntax with optional default values: ${ENV_VAR:default}

    Args:
        value: Configuration value (string, dict, list, or other)

    Returns:
        Value with environment variables expanded

    Examples:
        "${API_HOST}" -> value of API_HOST env var
        "${API_HOST:localhost}" -> value of API_HOST or "localhost" if not set
    """
    if isinstance(value, str):
        # Pattern matches ${VAR} or ${VAR:default}
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replace_env_var(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


@dataclass
class ServerConfig:
    """Per-server overrides keyed by a target's declared server name."""

    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
    verify: Optional[bool] = None


@dataclass
class TransportConfig:
    """HTTP transport configuration."""

    timeout: float = 30.0
    connect_timeout: float = 10.0
    max_connections: int = 100
    verify: bool = True
    headers: Dict[str, str] = field(default_factory=dict)
    servers: Dict[str, ServerConfig] = field(default_factory=dict)


@dataclass
class DispatcherConfig:
    """Request dispatcher behaviour."""

    offline_policy: str = "drop"  # "drop" or "fail"
    timestamp_format: str = "%Y-%m-%d %H:%M:%S"
    banner_identifier: str = "RestErrorNotificationBanner"


@dataclass
class ClassifierConfig:
    """Error classification rules."""

    code_fields: List[str] = field(default_factory=lambda: ["code", "errorCode", "error_code"])
    auth_failure_codes: List[str] = field(default_factory=lambda: list(DEFAULT_AUTH_FAILURE_CODES))
    messages: Dict[str, str] = field(default_factory=dict)
    default_message: str = "Something went wrong. Please try again later."


@dataclass
class ProgressConfig:
    """Loading-indicator suppression rules, as ``group/variant`` entries."""

    suppress: List[str] = field(default_factory=list)


@dataclass
class ReachabilityConfig:
    """Reachability probe configuration."""

    host: str = ""  # Empty means "assume reachable"
    port: int = 443
    timeout: float = 3.0


@dataclass
class DatabaseConfig:
    """Request log database configuration."""

    url: str = ""
    echo: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    format: str = "console"  # "console" or "json"


@dataclass
class CourierConfig:
    """Main Courier configuration."""

    transport: TransportConfig = field(default_factory=TransportConfig)
    dispatcher: DispatcherConfig = field(default_factory=DispatcherConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    progress: ProgressConfig = field(default_factory=ProgressConfig)
    reachability: ReachabilityConfig = field(default_factory=ReachabilityConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_default_config_path() -> str:
    """Get the default configuration file path (``COURIER_CONFIG`` wins when set)."""
    return os.environ.get("COURIER_CONFIG") or os.path.expanduser("~/.courier/config.yaml")


def get_default_config() -> CourierConfig:
    """
    Get default configuration with sensible defaults.

    Returns:
        CourierConfig: Default configuration object
    """
    home_dir = os.path.expanduser("~/.courier")

    return CourierConfig(
        database=DatabaseConfig(
            url="sqlite:///" + os.path.join(home_dir, "request_log.db"),
        ),
    )


def load_config(config_path: Optional[str] = None) -> CourierConfig:
    """
    Load configuration from YAML file with validation.

    If config file is not found, returns default configuration.
    If config file is malformed or invalid, raises InvalidConfigurationError.

    Args:
        config_path: Path to configuration file. If None, uses default path.

    Returns:
        CourierConfig: Loaded and validated configuration

    Raises:
        InvalidConfigurationError: If configuration is invalid or malformed
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = os.path.expanduser(config_path)

    if not os.path.exists(config_path):
        logger.info("config_not_found", path=config_path)
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)
        logger.debug("config_file_read", path=config_path)
    except yaml.YAMLError as e:
        logger.error("config_parse_failed", path=config_path, exc_info=True)
        raise InvalidConfigurationError(
            f"Failed to parse YAML configuration file '{config_path}': {e}"
        ) from e
    except OSError as e:
        logger.error("config_read_failed", path=config_path, exc_info=True)
        raise InvalidConfigurationError(
            f"Failed to read configuration file '{config_path}': {e}"
        ) from e

    if config_data is None:
        logger.info("config_file_empty", path=config_path)
        return get_default_config()

    if not isinstance(config_data, dict):
        raise InvalidConfigurationError(
            f"Configuration file '{config_path}' must contain a mapping at the top level"
        )

    config_data = _expand_env_vars(config_data)

    try:
        config = _build_config_from_dict(config_data)
        _validate_config(config)
    except InvalidConfigurationError:
        raise
    except (TypeError, ValueError, AttributeError) as e:
        logger.error("config_invalid", path=config_path, exc_info=True)
        raise InvalidConfigurationError(
            f"Invalid configuration in '{config_path}': {e}"
        ) from e

    logger.info("config_loaded", path=config_path)
    return config


_TRUE_STRINGS = ("true", "yes", "on", "1")
_FALSE_STRINGS = ("false", "no", "off", "0")


def _parse_bool(value: Any, name: str) -> bool:
    """Accept YAML booleans and the strings left behind by ${ENV} substitution."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise InvalidConfigurationError(f"'{name}' must be true or false, got {value!r}")


def _section(config_data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config_data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidConfigurationError(f"'{name}' section must be a mapping")
    return section


def _build_config_from_dict(config_data: Dict[str, Any]) -> CourierConfig:
    """
    Build CourierConfig from dictionary loaded from YAML.

    Merges user configuration with defaults.

    Args:
        config_data: Dictionary loaded from YAML file

    Returns:
        CourierConfig: Configuration object
    """
    default_config = get_default_config()

    transport_data = _section(config_data, 'transport')
    servers = {
        str(name): ServerConfig(
            headers=dict(server.get('headers') or {}),
            timeout=float(server['timeout']) if server.get('timeout') is not None else None,
            verify=(
                _parse_bool(server['verify'], f"transport.servers.{name}.verify")
                if server.get('verify') is not None
                else None
            ),
        )
        for name, server in (transport_data.get('servers') or {}).items()
    }
    transport = TransportConfig(
        timeout=float(transport_data.get('timeout', default_config.transport.timeout)),
        connect_timeout=float(
            transport_data.get('connect_timeout', default_config.transport.connect_timeout)
        ),
        max_connections=int(
            transport_data.get('max_connections', default_config.transport.max_connections)
        ),
        verify=_parse_bool(
            transport_data.get('verify', default_config.transport.verify), 'transport.verify'
        ),
        headers=dict(transport_data.get('headers') or {}),
        servers=servers,
    )

    dispatcher_data = _section(config_data, 'dispatcher')
    dispatcher = DispatcherConfig(
        offline_policy=str(
            dispatcher_data.get('offline_policy', default_config.dispatcher.offline_policy)
        ).lower(),
        timestamp_format=dispatcher_data.get(
            'timestamp_format', default_config.dispatcher.timestamp_format
        ),
        banner_identifier=dispatcher_data.get(
            'banner_identifier', default_config.dispatcher.banner_identifier
        ),
    )

    classifier_data = _section(config_data, 'classifier')
    classifier = ClassifierConfig(
        code_fields=list(classifier_data.get('code_fields', default_config.classifier.code_fields)),
        auth_failure_codes=list(
            classifier_data.get('auth_failure_codes', default_config.classifier.auth_failure_codes)
        ),
        messages={str(k): str(v) for k, v in (classifier_data.get('messages') or {}).items()},
        default_message=classifier_data.get(
            'default_message', default_config.classifier.default_message
        ),
    )

    progress_data = _section(config_data, 'progress')
    progress = ProgressConfig(suppress=list(progress_data.get('suppress') or []))

    reachability_data = _section(config_data, 'reachability')
    reachability = ReachabilityConfig(
        host=reachability_data.get('host', default_config.reachability.host) or "",
        port=int(reachability_data.get('port', default_config.reachability.port)),
        timeout=float(reachability_data.get('timeout', default_config.reachability.timeout)),
    )

    database_data = _section(config_data, 'database')
    database = DatabaseConfig(
        url=database_data.get('url', default_config.database.url),
        echo=_parse_bool(database_data.get('echo', default_config.database.echo), 'database.echo'),
    )

    logging_data = _section(config_data, 'logging')
    logging = LoggingConfig(
        level=logging_data.get('level', default_config.logging.level),
        file=os.path.expanduser(logging_data.get('file', default_config.logging.file) or ""),
        format=logging_data.get('format', default_config.logging.format),
    )

    return CourierConfig(
        transport=transport,
        dispatcher=dispatcher,
        classifier=classifier,
        progress=progress,
        reachability=reachability,
        database=database,
        logging=logging,
    )


def _validate_config(config: CourierConfig) -> None:
    """
    Validate configuration values.

    Args:
        config: Configuration to validate

    Raises:
        InvalidConfigurationError: If configuration is invalid
    """
    if config.transport.timeout <= 0:
        raise InvalidConfigurationError(
            f"transport timeout must be positive, got {config.transport.timeout}"
        )
    if config.transport.connect_timeout <= 0:
        raise InvalidConfigurationError(
            f"transport connect_timeout must be positive, got {config.transport.connect_timeout}"
        )
    if config.transport.max_connections < 1:
        raise InvalidConfigurationError(
            f"max_connections must be at least 1, got {config.transport.max_connections}"
        )

    if config.dispatcher.offline_policy not in OFFLINE_POLICIES:
        raise InvalidConfigurationError(
            f"offline_policy must be one of {list(OFFLINE_POLICIES)}, "
            f"got '{config.dispatcher.offline_policy}'"
        )
    if not config.dispatcher.timestamp_format:
        raise InvalidConfigurationError("timestamp_format cannot be empty")
    if not config.dispatcher.banner_identifier:
        raise InvalidConfigurationError("banner_identifier cannot be empty")

    if not config.classifier.code_fields:
        raise InvalidConfigurationError("classifier code_fields cannot be empty")

    for entry in config.progress.suppress:
        if not isinstance(entry, str) or entry.count("/") != 1 or entry.startswith("/"):
            raise InvalidConfigurationError(
                f"progress suppress entries must look like 'group/variant', got {entry!r}"
            )

    if config.reachability.timeout <= 0:
        raise InvalidConfigurationError(
            f"reachability timeout must be positive, got {config.reachability.timeout}"
        )

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.logging.level.upper() not in valid_log_levels:
        raise InvalidConfigurationError(
            f"logging level must be one of {valid_log_levels}, "
            f"got '{config.logging.level}'"
        )
    if config.logging.format not in ("console", "json"):
        raise InvalidConfigurationError(
            f"logging format must be 'console' or 'json', got '{config.logging.format}'"
        )

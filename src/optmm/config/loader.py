"""
Configuration Loader Module

Environment variable overrides for the engine configuration and loguru
sink setup.
"""

import os
import sys
from typing import TYPE_CHECKING, Any, Dict

from loguru import logger

from optmm.core.errors import ConfigurationError

if TYPE_CHECKING:
    from optmm.config.engine_config import LoggingConfig

# env var → (section, key, type); section None = top-level key
ENV_MAPPING = {
    "OPTMM_RATE": (None, "rate", float),
    "OPTMM_HALT_SEVERITY": (None, "halt_severity", str),
    "OPTMM_LOG_LEVEL": ("logging", "level", str),
    "OPTMM_LOG_FILE": ("logging", "file", str),
    "OPTMM_RISK_AVERSION": ("spread", "risk_aversion", float),
    "OPTMM_ARRIVAL_INTENSITY": ("spread", "arrival_intensity", float),
    "OPTMM_MIN_SPREAD": ("spread", "min_spread", float),
    "OPTMM_MAX_SPREAD": ("spread", "max_spread", float),
    "OPTMM_BASE_SIZE": ("quoting", "base_size", float),
    "OPTMM_HEDGE_ENTER_THRESHOLD": ("hedging", "enter_threshold", float),
    "OPTMM_HEDGE_EXIT_THRESHOLD": ("hedging", "exit_threshold", float),
    "OPTMM_USE_LIMIT_ORDERS": ("hedging", "use_limit_orders", bool),
    "OPTMM_MAX_DELTA": ("risk_limits", "max_delta", float),
    "OPTMM_MAX_LOSS": ("risk_limits", "max_loss", float),
    "OPTMM_MAX_DRAWDOWN": ("risk_limits", "max_drawdown", float),
    "OPTMM_MAX_POSITION_VALUE": ("risk_limits", "max_position_value", float),
    "OPTMM_POSITION_PRESET": ("position_limits", "preset", str),
}

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <level>{message}</level>"
)
FILE_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]} | {message}"


def merge_config_with_env(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge configuration with environment variables.

    Environment variables override config file settings.

    Examples:
        OPTMM_LOG_LEVEL=DEBUG
        OPTMM_HEDGE_ENTER_THRESHOLD=250
        OPTMM_HALT_SEVERITY=critical
        OPTMM_USE_LIMIT_ORDERS=true

    Args:
        config_data: Configuration data from file

    Returns:
        New dictionary with env vars applied

    Raises:
        ConfigurationError: If an env var cannot be converted to its type
    """
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in config_data.items()}

    for env_var, (section, key, kind) in ENV_MAPPING.items():
        env_value = os.environ.get(env_var)
        if env_value is None:
            continue

        if kind is bool:
            value = env_value.lower() in ("true", "1", "yes", "on")
        elif kind is float:
            try:
                value = float(env_value)
            except ValueError as e:
                raise ConfigurationError(
                    f"{env_var} must be a number, got {env_value!r}",
                    errors=[f"{env_var}: not a number"],
                ) from e
        else:
            value = env_value

        if section is None:
            merged[key] = value
        else:
            target = merged.get(section)
            if not isinstance(target, dict):
                target = {}
                merged[section] = target
            target[key] = value

        logger.debug(f"Overriding {section + '.' if section else ''}{key} from env: {env_var}")

    return merged


def configure_logging(config: "LoggingConfig") -> None:
    """
    Replace loguru's default sink with the configured ones.

    Adds a colored stderr sink at ``config.level`` and, when ``config.file``
    is set, a rotating file sink at ``config.file_level``.
    """
    logger.remove()
    logger.configure(extra={"component": "optmm"})
    logger.add(sys.stderr, level=config.level, format=LOG_FORMAT)

    if config.file:
        logger.add(
            config.file,
            rotation=config.rotation,
            retention=config.retention,
            level=config.file_level,
            format=FILE_LOG_FORMAT,
        )

    logger.debug(f"Logging configured: stderr={config.level}, file={config.file or 'disabled'}")

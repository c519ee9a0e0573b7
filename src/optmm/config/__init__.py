"""
Engine configuration: YAML loading, environment overrides and logging setup.
"""

from optmm.config.loader import configure_logging, merge_config_with_env
from optmm.config.engine_config import EngineConfig, LoggingConfig, load_engine_config

__all__ = [
    "EngineConfig",
    "LoggingConfig",
    "configure_logging",
    "load_engine_config",
    "merge_config_with_env",
]

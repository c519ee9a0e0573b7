"""
Engine Configuration

Loads and validates the market-making engine configuration from YAML.

Config location: config/engine.yaml

Schema:
- spread: Avellaneda-Stoikov constants (γ, k, spread clamps, skew factor)
- quoting: base size, lot/tick size, resubmit tolerances
- hedging: hysteresis band and hedge sizing
- risk_limits: portfolio Greek / loss / drawdown / hedge-notional limits
- position_limits: hierarchical quantity and Greek caps (optional ``preset``)
- logging: loguru sinks
- rate: risk-free rate handed to the pricing collaborator
- halt_severity: breach severity that halts trading (null = advisory only)

Environment variables prefixed OPTMM_ override file values (see loader.py).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger

from optmm.config.loader import merge_config_with_env
from optmm.core.errors import ConfigurationError
from optmm.hedging.params import HedgeParams
from optmm.inventory.limits import PositionLimits
from optmm.quoting.generator import QuotingConfig
from optmm.quoting.params import SpreadConfig
from optmm.risk.limits import BreachSeverity, RiskLimits

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LoggingConfig:
    """Loguru sink configuration."""

    level: str = "INFO"
    file: Optional[str] = None
    file_level: str = "DEBUG"
    rotation: str = "10 MB"
    retention: str = "7 days"

    @classmethod
    def from_dict(cls, data: dict) -> "LoggingConfig":
        defaults = cls()
        return cls(
            level=str(data.get("level", defaults.level)).upper(),
            file=data.get("file", defaults.file),
            file_level=str(data.get("file_level", defaults.file_level)).upper(),
            rotation=data.get("rotation", defaults.rotation),
            retention=data.get("retention", defaults.retention),
        )


@dataclass
class EngineConfig:
    """Complete engine configuration."""

    spread: SpreadConfig = field(default_factory=SpreadConfig)
    quoting: QuotingConfig = field(default_factory=QuotingConfig)
    hedging: HedgeParams = field(default_factory=HedgeParams)
    risk_limits: RiskLimits = field(default_factory=RiskLimits)
    position_limits: PositionLimits = field(default_factory=PositionLimits)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    rate: float = 0.05
    halt_severity: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "EngineConfig":
        """
        Create config from a dictionary with nested dataclass instantiation.

        Every section is built even if an earlier one fails, so the raised
        error lists all problems at once.

        Raises:
            ConfigurationError: If any section is invalid
        """
        sections = {
            "spread": SpreadConfig.from_dict,
            "quoting": QuotingConfig.from_dict,
            "hedging": HedgeParams.from_dict,
            "risk_limits": RiskLimits.from_dict,
            "position_limits": PositionLimits.from_dict,
            "logging": LoggingConfig.from_dict,
        }
        built = {}
        errors = []

        for name, builder in sections.items():
            section_data = data.get(name) or {}
            if not isinstance(section_data, dict):
                errors.append(f"{name}: expected a mapping, got {type(section_data).__name__}")
                continue
            try:
                built[name] = builder(section_data)
            except (ValueError, TypeError) as e:
                errors.append(f"{name}: {e}")

        if errors:
            raise ConfigurationError(
                "Configuration validation errors:\n" + "\n".join(f"  - {e}" for e in errors),
                errors=errors,
            )

        return cls(
            **built,
            rate=data.get("rate", 0.05),
            halt_severity=data.get("halt_severity"),
        )

    def validate(self) -> list[str]:
        """
        Cross-section validation.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not -0.05 <= self.rate <= 1.0:
            errors.append(f"rate must be between -0.05 and 1.0: {self.rate}")

        severities = list(BreachSeverity.__members__)
        if self.halt_severity is not None and self.halt_severity.upper() not in severities:
            errors.append(
                f"halt_severity must be one of {severities} or null: "
                f"{self.halt_severity}"
            )

        if self.logging.level not in LOG_LEVELS:
            errors.append(f"Invalid logging.level: {self.logging.level}")
        if self.logging.file_level not in LOG_LEVELS:
            errors.append(f"Invalid logging.file_level: {self.logging.file_level}")

        if self.quoting.base_size > self.position_limits.per_option:
            errors.append(
                f"quoting.base_size ({self.quoting.base_size}) exceeds "
                f"position_limits.per_option ({self.position_limits.per_option})"
            )

        return errors

    @property
    def halt_policy(self) -> BreachSeverity | None:
        """halt_severity as a BreachSeverity (None = advisory)."""
        if self.halt_severity is None:
            return None
        return BreachSeverity[self.halt_severity.upper()]


def load_engine_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load engine configuration from a YAML file.

    A missing or empty file yields the defaults; OPTMM_* environment
    variables are applied either way.

    Args:
        config_path: Path to config file (default: config/engine.yaml)

    Returns:
        EngineConfig object

    Raises:
        ConfigurationError: If the file cannot be parsed or the config is invalid
    """
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent.parent
        config_path = project_root / "config" / "engine.yaml"

    config_file = Path(config_path)
    data: dict = {}

    if not config_file.exists():
        logger.warning(f"Engine config file not found: {config_file}, using defaults")
    else:
        try:
            with open(config_file, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML config: {e}") from e

        if not data:
            logger.warning(f"Empty config file: {config_file}, using defaults")
        elif not isinstance(data, dict):
            raise ConfigurationError(f"Config root must be a mapping: {config_file}")

    data = merge_config_with_env(data)
    config = EngineConfig.from_dict(data)

    errors = config.validate()
    if errors:
        raise ConfigurationError(
            "Configuration validation errors:\n" + "\n".join(f"  - {e}" for e in errors),
            errors=errors,
        )

    logger.info(f"Loaded engine config from {config_file}")
    logger.debug(
        f"  Spread: gamma={config.spread.risk_aversion}, k={config.spread.arrival_intensity}, "
        f"clamp=[{config.spread.min_spread}, {config.spread.max_spread}]"
    )
    logger.debug(
        f"  Hedge band: enter={config.hedging.enter_threshold}, exit={config.hedging.exit_threshold}"
    )
    logger.debug(f"  Halt policy: {config.halt_severity or 'advisory'}")

    return config

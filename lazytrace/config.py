"""
Centralized configuration for lazytrace.

Supports loading from YAML files, environment variables, and defaults.
Environment variables win over YAML, YAML wins over defaults.
"""

from dataclasses import dataclass, field
from enum import Enum
import logging
import os
from typing import Optional, Dict, Any
import yaml

from .core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SHAPE_CACHE_SIZE = 4096
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LogLevel(Enum):
    """Log levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, 'true' if default else 'false').lower() in ('1', 'true', 'yes')


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(
            f"Environment variable {name} must be an integer",
            context={'value': raw},
        ) from None


@dataclass
class IRConfig:
    """IR construction and shape cache configuration."""
    # Capacity of the shape cache, in entries
    shape_cache_size: int = DEFAULT_SHAPE_CACHE_SIZE

    # Leaf hashes fold only the rank of their shape, so traces that differ
    # only in dimension sizes share hashes
    dynamic_shapes: bool = False

    # Capture the Python call site of every node for diagnostics
    record_frame_info: bool = False
    max_frame_depth: int = 8

    def __post_init__(self):
        if self.shape_cache_size <= 0:
            raise ConfigurationError(
                "shape_cache_size must be positive",
                context={'shape_cache_size': self.shape_cache_size},
            )
        if self.max_frame_depth < 0:
            raise ConfigurationError(
                "max_frame_depth must be non-negative",
                context={'max_frame_depth': self.max_frame_depth},
            )

    @classmethod
    def from_env(cls, base: Optional['IRConfig'] = None) -> 'IRConfig':
        """Load IR config from environment variables."""
        base = base or cls()
        return cls(
            shape_cache_size=_env_int('LTC_IR_SHAPE_CACHE_SIZE', base.shape_cache_size),
            dynamic_shapes=_env_bool('LTC_DYNAMIC_SHAPES', base.dynamic_shapes),
            record_frame_info=_env_bool('LTC_IR_DEBUG', base.record_frame_info),
            max_frame_depth=_env_int('LTC_IR_MAX_FRAMES', base.max_frame_depth),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: LogLevel = LogLevel.WARNING
    format: str = DEFAULT_LOG_FORMAT

    @classmethod
    def from_env(cls, base: Optional['LoggingConfig'] = None) -> 'LoggingConfig':
        """Load logging config from environment variables."""
        base = base or cls()
        level = os.getenv('LTC_LOG_LEVEL', base.level.value).lower()
        try:
            parsed = LogLevel(level)
        except ValueError:
            raise ConfigurationError(
                "Unknown log level", context={'level': level}
            ) from None
        return cls(
            level=parsed,
            format=os.getenv('LTC_LOG_FORMAT', base.format),
        )


@dataclass
class LazyTraceConfig:
    """Main configuration class for lazytrace."""
    ir: IRConfig = field(default_factory=IRConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    config_file: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[str] = None) -> 'LazyTraceConfig':
        """
        Load configuration from YAML file and/or environment variables.

        Args:
            path: Path to YAML config file (optional)

        Returns:
            LazyTraceConfig instance with loaded settings
        """
        config = cls()

        if path and os.path.exists(path):
            with open(path, 'r') as f:
                yaml_data = yaml.safe_load(f)
            if yaml_data:
                config = cls._from_dict(yaml_data)
            config.config_file = path
            logger.debug(f"Loaded lazytrace config from {path}")
        elif path:
            logger.warning(f"Config file {path} not found, using defaults and environment")

        config.ir = IRConfig.from_env(config.ir)
        config.logging = LoggingConfig.from_env(config.logging)
        return config

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> 'LazyTraceConfig':
        """Create config from dictionary (YAML data)."""
        if not isinstance(data, dict):
            raise ConfigurationError("Config root must be a mapping")
        ir_data = dict(data.get('ir', {}) or {})
        logging_data = dict(data.get('logging', {}) or {})
        if 'level' in logging_data:
            try:
                logging_data['level'] = LogLevel(str(logging_data['level']).lower())
            except ValueError:
                raise ConfigurationError(
                    "Unknown log level", context={'level': logging_data['level']}
                ) from None
        try:
            return cls(
                ir=IRConfig(**ir_data),
                logging=LoggingConfig(**logging_data),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid config keys: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            'ir': {
                'shape_cache_size': self.ir.shape_cache_size,
                'dynamic_shapes': self.ir.dynamic_shapes,
                'record_frame_info': self.ir.record_frame_info,
                'max_frame_depth': self.ir.max_frame_depth,
            },
            'logging': {
                'level': self.logging.level.value,
                'format': self.logging.format,
            },
        }

    def save(self, path: str) -> None:
        """Save configuration to YAML file."""
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def configure_logging(config: Optional[LazyTraceConfig] = None) -> logging.Logger:
    """Apply the logging section of the config to the ``lazytrace`` logger."""
    config = config or get_config()
    package_logger = logging.getLogger('lazytrace')
    package_logger.setLevel(config.logging.level.value.upper())
    if not any(not isinstance(h, logging.NullHandler) for h in package_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config.logging.format))
        package_logger.addHandler(handler)
    return package_logger


# Global configuration instance
_config: Optional[LazyTraceConfig] = None


def get_config() -> LazyTraceConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = LazyTraceConfig.load()
    return _config


def set_config(config: Optional[LazyTraceConfig]) -> None:
    """Set the global configuration instance (None reloads on next access)."""
    global _config
    _config = config


def load_config(path: Optional[str] = None) -> LazyTraceConfig:
    """Load configuration from file and/or environment."""
    return LazyTraceConfig.load(path)

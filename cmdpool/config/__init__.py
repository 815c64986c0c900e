from .loader import build_configuration, load_configuration, load_profile
from .types import (
    ConfigError,
    RunConfiguration,
    UnsupportedConfigFormatError,
    validate_configuration,
)

__all__ = [
    "build_configuration",
    "load_configuration",
    "load_profile",
    "RunConfiguration",
    "ConfigError",
    "UnsupportedConfigFormatError",
    "validate_configuration",
]

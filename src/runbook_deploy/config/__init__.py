"""Configuration management for runbook deployment."""

from .models import (
    SourceConfig,
    TargetConfig,
    DeploymentSettings,
)
from .parser import Config, ConfigValidationError

__all__ = [
    "SourceConfig",
    "TargetConfig",
    "DeploymentSettings",
    "Config",
    "ConfigValidationError",
]

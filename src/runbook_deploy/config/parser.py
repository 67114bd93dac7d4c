"""YAML configuration parser for runbook deployment."""

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import ValidationError

from runbook_deploy.utils.errors import CredentialError, ErrorContext
from .models import DeploymentSettings, SourceConfig, TargetConfig


class ConfigValidationError(Exception):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, errors: Optional[List[Dict]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)

    def __str__(self) -> str:
        """Format validation errors for display."""
        if not self.errors:
            return self.message

        error_lines = [self.message, ""]
        for error in self.errors:
            location = " -> ".join(str(loc) for loc in error.get("loc", []))
            msg = error.get("msg", "Unknown error")
            error_lines.append(f"  - {location}: {msg}")

        return "\n".join(error_lines)


SECTIONS = {
    "source": SourceConfig,
    "target": TargetConfig,
    "deployment": DeploymentSettings,
}


class Config:
    """Configuration manager for runbook deployment."""

    def __init__(self, config_path: str):
        """Initialize configuration manager.

        Args:
            config_path: Path to runbook-deploy.yaml configuration file
        """
        self.config_path = Path(config_path)
        self.data: Dict = {}
        self.source: Optional[SourceConfig] = None
        self.target: Optional[TargetConfig] = None
        self.deployment: DeploymentSettings = DeploymentSettings()

    @classmethod
    def from_dict(cls, data: Dict, config_path: str = "<memory>") -> "Config":
        """Build a validated configuration from an already-parsed mapping.

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        config = cls(config_path)
        config.data = data or {}
        config._apply()
        return config

    def load(self) -> "Config":
        """Load and validate configuration from YAML file.

        Returns:
            Self for method chaining

        Raises:
            ConfigValidationError: If configuration is invalid
            FileNotFoundError: If configuration file doesn't exist
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, "r") as f:
                self.data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Failed to parse YAML: {e}")

        self._apply()
        return self

    def _apply(self) -> None:
        if not isinstance(self.data, dict):
            raise ConfigValidationError("Configuration root must be a mapping")

        validation_errors = self.validate()
        if validation_errors:
            raise ConfigValidationError(
                f"Configuration validation failed with {len(validation_errors)} error(s)",
                validation_errors,
            )

        self.source = SourceConfig(**self.data["source"])
        if "target" in self.data:
            self.target = TargetConfig(**self.data["target"])
        self.deployment = DeploymentSettings(**self.data.get("deployment", {}))

    def validate(self) -> List[Dict]:
        """Validate configuration against schema.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if "source" not in self.data:
            errors.append({"loc": ["source"], "msg": "Required field 'source' is missing"})

        for section, model in SECTIONS.items():
            if section not in self.data:
                continue
            section_data = self.data[section]
            if not isinstance(section_data, dict):
                errors.append({"loc": [section], "msg": f"'{section}' must be a mapping"})
                continue
            try:
                model(**section_data)
            except ValidationError as e:
                for error in e.errors():
                    errors.append(
                        {
                            "loc": [section] + list(error["loc"]),
                            "msg": error["msg"],
                        }
                    )

        return errors

    def resolve_secret(self, env_name: Optional[str], required: bool = True) -> Optional[str]:
        """Read a secret from the environment variable named in the configuration.

        Args:
            env_name: Name of the environment variable
            required: Raise when the variable is unset

        Returns:
            The secret, or None when not required and unset

        Raises:
            CredentialError: If a required secret is missing
        """
        if not env_name:
            if required:
                raise CredentialError("No environment variable configured for a required token")
            return None

        value = os.environ.get(env_name)
        if not value and required:
            raise CredentialError(
                f"Environment variable '{env_name}' is not set",
                context=ErrorContext(operation="resolve_secret"),
                suggestions=[f"Export {env_name} before running the deployment"]
            )
        return value or None

    def to_dict(self) -> Dict:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        return {
            "source": self.source.model_dump() if self.source else {},
            "target": self.target.model_dump() if self.target else None,
            "deployment": self.deployment.model_dump(mode="json"),
        }

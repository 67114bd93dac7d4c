"""Pydantic models for configuration schema."""

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from runbook_deploy.artifacts.models import SUPPORTED_EXTENSIONS
from runbook_deploy.orchestrator.executor import DeploymentMode


class SourceConfig(BaseModel):
    """Where artifacts are read from."""

    provider: str = Field("github", pattern="^(github|local)$")
    owner: Optional[str] = Field(None, description="Repository owner (github provider)")
    repository: Optional[str] = Field(None, description="Repository name (github provider)")
    branch: str = Field("main", min_length=1)
    path: Optional[str] = Field(None, description="Checkout directory (local provider)")
    root_folder: str = Field("", description="Folder inside the tree that holds the runbooks")
    token_env: Optional[str] = Field(None, description="Environment variable holding the access token")
    api_url: str = Field("https://api.github.com", min_length=1)

    @field_validator("root_folder")
    @classmethod
    def normalize_root_folder(cls, v: str) -> str:
        """Strip surrounding slashes and reject parent references."""
        v = v.strip().strip("/")
        if ".." in v.split("/"):
            raise ValueError("root_folder cannot contain '..'")
        return v

    @model_validator(mode="after")
    def validate_provider_fields(self):
        """Validate the fields each provider needs."""
        if self.provider == "github" and not (self.owner and self.repository):
            raise ValueError("owner and repository are required for the github provider")
        if self.provider == "local" and not self.path:
            raise ValueError("path is required for the local provider")
        return self


class TargetConfig(BaseModel):
    """Automation account that receives the runbooks."""

    subscription_id: str = Field(..., min_length=1)
    resource_group: str = Field(..., min_length=1, max_length=90)
    automation_account: str = Field(..., min_length=6, max_length=50, pattern="^[A-Za-z][A-Za-z0-9-]*$")
    location: str = Field(..., min_length=1)
    token_env: str = Field("AZURE_ACCESS_TOKEN", min_length=1)
    publish: bool = True
    api_version: str = Field("2023-11-01", pattern="^[0-9]{4}-[0-9]{2}-[0-9]{2}(-preview)?$")


class DeploymentSettings(BaseModel):
    """How a run is ordered and where content is staged."""

    mode: DeploymentMode = DeploymentMode.STRUCTURAL
    max_passes: Optional[int] = Field(None, ge=1, description="Pass limit for adaptive mode")
    extensions: List[str] = Field(default_factory=lambda: list(SUPPORTED_EXTENSIONS))
    scratch_dir: str = Field(".runbook-deploy/scratch", min_length=1)

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: List[str]) -> List[str]:
        """Normalize extensions to lowercase with a leading dot."""
        if not v:
            raise ValueError("At least one extension must be configured")
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                raise ValueError("Extensions must be non-empty strings")
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized

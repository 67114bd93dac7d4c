"""Artifact discovery, classification and scratch storage."""

from runbook_deploy.artifacts.models import (
    Artifact,
    ArtifactKind,
    SUPPORTED_EXTENSIONS,
)
from runbook_deploy.artifacts.storage import LocalStorage
from runbook_deploy.artifacts.collector import (
    ArtifactCollector,
    CollectionFailure,
    CollectionResult,
)

__all__ = [
    'Artifact',
    'ArtifactKind',
    'SUPPORTED_EXTENSIONS',
    'LocalStorage',
    'ArtifactCollector',
    'CollectionFailure',
    'CollectionResult',
]

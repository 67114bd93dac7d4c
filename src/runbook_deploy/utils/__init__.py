"""Utility modules for logging, error handling, and retries."""

from runbook_deploy.utils.retry import RetryStrategy
from runbook_deploy.utils.errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    DeploymentError,
    ConfigurationError,
    CredentialError,
    PermissionError,
    NetworkError,
    SourceError,
    RetrievalError,
    DuplicateArtifactError,
    UnrecognizedArtifactKindError,
    DependencyError,
    CyclicDependencyError,
    ArtifactDeployError,
    ErrorHandler,
    error_handler
)
from runbook_deploy.utils.logging import get_logger, setup_logging, LogContext

__all__ = [
    # Retry
    'RetryStrategy',

    # Errors
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'DeploymentError',
    'ConfigurationError',
    'CredentialError',
    'PermissionError',
    'NetworkError',
    'SourceError',
    'RetrievalError',
    'DuplicateArtifactError',
    'UnrecognizedArtifactKindError',
    'DependencyError',
    'CyclicDependencyError',
    'ArtifactDeployError',
    'ErrorHandler',
    'error_handler',

    # Logging
    'get_logger',
    'setup_logging',
    'LogContext',
]

"""Error handling framework for runbook deployment operations."""

from typing import Optional, Dict, Any, List
from enum import Enum
from dataclasses import dataclass

import requests

from runbook_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Categories of errors that can occur during a deployment run."""
    CONFIGURATION = "configuration"
    CREDENTIAL = "credential"
    PERMISSION = "permission"
    NETWORK = "network"
    SOURCE = "source"
    INTEGRITY = "integrity"
    DEPENDENCY = "dependency"
    DEPLOYMENT = "deployment"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    CRITICAL = "critical"  # Run cannot continue
    ERROR = "error"  # Artifact failed but the run continues
    WARNING = "warning"  # Non-fatal issue
    INFO = "info"  # Informational message


@dataclass
class ErrorContext:
    """Context information for an error."""
    artifact: Optional[str] = None
    source_path: Optional[str] = None
    operation: Optional[str] = None
    url: Optional[str] = None
    status_code: Optional[int] = None
    request_id: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None


class DeploymentError(Exception):
    """Base exception for deployment errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        suggestions: Optional[List[str]] = None
    ):
        """Initialize deployment error.

        Args:
            message: Human-readable error message
            category: Error category
            severity: Error severity
            context: Additional context about the error
            cause: Original exception that caused this error
            suggestions: List of suggested fixes
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.cause = cause
        self.suggestions = suggestions or []

    def is_fatal(self) -> bool:
        """Check if this error aborts the whole run."""
        return self.severity == ErrorSeverity.CRITICAL

    def to_user_message(self) -> str:
        """Convert error to user-friendly message.

        Returns:
            Formatted error message for display to user
        """
        lines = [f"{self.severity.value.upper()}: {self.message}"]

        if self.context.artifact:
            lines.append(f"   Artifact: {self.context.artifact}")
        if self.context.source_path:
            lines.append(f"   Path: {self.context.source_path}")
        if self.context.operation:
            lines.append(f"   Operation: {self.context.operation}")

        if self.cause:
            lines.append(f"   Cause: {str(self.cause)}")

        if self.suggestions:
            lines.append("\nSuggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error
        """
        return {
            'message': self.message,
            'category': self.category.value,
            'severity': self.severity.value,
            'context': {
                'artifact': self.context.artifact,
                'source_path': self.context.source_path,
                'operation': self.context.operation,
                'url': self.context.url,
                'status_code': self.context.status_code,
                'request_id': self.context.request_id,
                'additional_info': self.context.additional_info
            },
            'cause': str(self.cause) if self.cause else None,
            'suggestions': self.suggestions
        }


class ConfigurationError(DeploymentError):
    """Error in configuration file or settings."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class CredentialError(DeploymentError):
    """A credential could not be resolved or was rejected."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.CREDENTIAL,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class PermissionError(DeploymentError):
    """The credential is valid but lacks rights for the operation."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.PERMISSION,
            severity=ErrorSeverity.ERROR,
            **kwargs
        )


class NetworkError(DeploymentError):
    """Network-related error."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.ERROR,
            **kwargs
        )


class SourceError(DeploymentError):
    """The source tree could not be listed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.SOURCE,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class RetrievalError(DeploymentError):
    """A single artifact's content could not be retrieved."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.SOURCE,
            severity=ErrorSeverity.WARNING,
            **kwargs
        )


class DuplicateArtifactError(DeploymentError):
    """Two source paths resolve to the same artifact name."""

    def __init__(self, name: str, first_path: str, second_path: str, **kwargs):
        super().__init__(
            f"Artifact name '{name}' is produced by both '{first_path}' and '{second_path}'",
            category=ErrorCategory.INTEGRITY,
            severity=ErrorSeverity.CRITICAL,
            context=ErrorContext(artifact=name, source_path=second_path),
            suggestions=[
                'Rename one of the files so every runbook name is unique',
                'Narrow the configured root folder to exclude one of them'
            ],
            **kwargs
        )
        self.name = name
        self.paths = [first_path, second_path]


class UnrecognizedArtifactKindError(DeploymentError):
    """A file cannot be classified as any known artifact kind."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class DependencyError(DeploymentError):
    """Error related to artifact dependencies."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.DEPENDENCY,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class CyclicDependencyError(DependencyError):
    """The dependency graph contains a cycle."""

    def __init__(self, cycle: List[str], **kwargs):
        super().__init__(
            f"Circular dependency detected: {' -> '.join(cycle)}",
            context=ErrorContext(artifact=cycle[0] if cycle else None),
            suggestions=[
                'Check the source tree for symlinked or repeated folders',
            ],
            **kwargs
        )
        self.cycle = cycle


class ArtifactDeployError(DeploymentError):
    """The target rejected an artifact."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.DEPLOYMENT,
            severity=ErrorSeverity.ERROR,
            **kwargs
        )


class ErrorHandler:
    """Handles and categorizes errors from HTTP collaborators and other sources."""

    # Mapping of HTTP status codes to error categories and suggestions
    HTTP_ERROR_MAPPING = {
        401: {
            'category': ErrorCategory.CREDENTIAL,
            'message': 'Authentication failed - token is missing, invalid or expired',
            'suggestions': [
                'Check that the environment variable named by token_env is set',
                'Refresh the access token if it has expired'
            ]
        },
        403: {
            'category': ErrorCategory.PERMISSION,
            'message': 'Access denied - insufficient permissions',
            'suggestions': [
                'Verify the identity has contributor rights on the automation account',
                'For source listing, check the token has repository read scope'
            ]
        },
        404: {
            'category': ErrorCategory.SOURCE,
            'message': 'Resource not found',
            'suggestions': [
                'Verify owner, repository and branch in the configuration',
                'Verify subscription, resource group and automation account names'
            ]
        },
        409: {
            'category': ErrorCategory.DEPLOYMENT,
            'message': 'Conflicting operation in progress',
            'suggestions': [
                'Wait for running jobs of this runbook to finish and retry'
            ]
        },
        400: {
            'category': ErrorCategory.DEPLOYMENT,
            'message': 'Request rejected by the target',
            'suggestions': [
                'Check the runbook content parses for its runbook type',
                'Check that runbooks or modules it references are already deployed'
            ]
        },
        429: {
            'category': ErrorCategory.NETWORK,
            'message': 'API rate limit exceeded',
            'suggestions': [
                'Reduce the frequency of API calls',
                'Automatic retry with backoff is enabled'
            ]
        },
    }

    def __init__(self):
        """Initialize error handler."""
        self.logger = get_logger(__name__)

    def handle_exception(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None
    ) -> DeploymentError:
        """Handle an exception and convert to DeploymentError.

        Args:
            error: The exception to handle
            context: Additional context about where the error occurred

        Returns:
            DeploymentError with categorization and suggestions
        """
        context = context or ErrorContext()

        if isinstance(error, DeploymentError):
            return error

        if isinstance(error, requests.HTTPError) and error.response is not None:
            return self._handle_http_error(error, context)

        if isinstance(error, (requests.ConnectionError, requests.Timeout, ConnectionError, TimeoutError)):
            return self._handle_network_error(error, context)

        return DeploymentError(
            message=str(error) or type(error).__name__,
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.ERROR,
            context=context,
            cause=error,
            suggestions=['Check logs for more details']
        )

    def _handle_http_error(
        self,
        error: requests.HTTPError,
        context: ErrorContext
    ) -> DeploymentError:
        """Handle an HTTP error response.

        Args:
            error: The HTTPError raised by raise_for_status()
            context: Error context

        Returns:
            Categorized DeploymentError
        """
        response = error.response
        status_code = response.status_code
        context.status_code = status_code
        context.url = context.url or response.url
        context.request_id = (
            response.headers.get('x-ms-request-id')
            or response.headers.get('X-GitHub-Request-Id')
        )

        detail = _response_detail(response)
        error_info = self.HTTP_ERROR_MAPPING.get(status_code)

        if error_info is None and status_code >= 500:
            return NetworkError(
                message=f"Server error ({status_code}): {detail}",
                context=context,
                cause=error,
                suggestions=['The service may be degraded; retry later']
            )

        if error_info:
            if error_info['category'] == ErrorCategory.CREDENTIAL:
                return CredentialError(
                    message=f"{error_info['message']}: {detail}",
                    context=context,
                    cause=error,
                    suggestions=error_info['suggestions']
                )
            if error_info['category'] == ErrorCategory.PERMISSION:
                return PermissionError(
                    message=f"{error_info['message']}: {detail}",
                    context=context,
                    cause=error,
                    suggestions=error_info['suggestions']
                )
            return DeploymentError(
                message=f"{error_info['message']}: {detail}",
                category=error_info['category'],
                severity=ErrorSeverity.ERROR,
                context=context,
                cause=error,
                suggestions=error_info['suggestions']
            )

        return DeploymentError(
            message=f"HTTP {status_code}: {detail}",
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.ERROR,
            context=context,
            cause=error
        )

    def _handle_network_error(
        self,
        error: Exception,
        context: ErrorContext
    ) -> NetworkError:
        """Handle network-related errors.

        Args:
            error: The network error
            context: Error context

        Returns:
            NetworkError
        """
        return NetworkError(
            message=f'Network error: {str(error)}',
            context=context,
            cause=error,
            suggestions=[
                'Check your internet connection',
                'Check if VPN or proxy is interfering',
                'Retry the operation (automatic retry enabled)'
            ]
        )

    def log_error(self, error: DeploymentError):
        """Log an error with appropriate level.

        Args:
            error: The error to log
        """
        log_message = error.to_user_message()

        if error.severity in (ErrorSeverity.CRITICAL, ErrorSeverity.ERROR):
            self.logger.error(log_message)
        elif error.severity == ErrorSeverity.WARNING:
            self.logger.warning(log_message)
        else:
            self.logger.info(log_message)

        self.logger.debug(f"Error details: {error.to_dict()}")


def _response_detail(response: requests.Response) -> str:
    """Extract the most useful error text from an HTTP response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason or 'no detail'

    if isinstance(body, dict):
        # ARM wraps errors as {"error": {"code", "message"}}; GitHub uses {"message"}
        inner = body.get('error')
        if isinstance(inner, dict) and inner.get('message'):
            return f"{inner.get('code', 'Error')}: {inner['message']}"
        if body.get('message'):
            return str(body['message'])
    return response.reason or 'no detail'


# Global error handler instance
error_handler = ErrorHandler()

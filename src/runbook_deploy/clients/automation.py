"""Deployment client for an Azure Automation account over the ARM REST API."""

import time
from typing import Dict, Optional
from urllib.parse import quote

import requests

from runbook_deploy.artifacts.models import Artifact
from runbook_deploy.clients.base import DeploymentClient
from runbook_deploy.utils.errors import ArtifactDeployError, ErrorContext, error_handler
from runbook_deploy.utils.logging import get_logger
from runbook_deploy.utils.retry import RetryStrategy

logger = get_logger(__name__)

DEFAULT_MANAGEMENT_URL = "https://management.azure.com"
DEFAULT_API_VERSION = "2023-11-01"


class AutomationAccountClient(DeploymentClient):
    """Creates, uploads and publishes runbooks in an automation account."""

    def __init__(
        self,
        subscription_id: str,
        resource_group: str,
        automation_account: str,
        location: str,
        token: str,
        publish: bool = True,
        api_version: str = DEFAULT_API_VERSION,
        management_url: str = DEFAULT_MANAGEMENT_URL,
        session: Optional[requests.Session] = None,
        retry_strategy: Optional[RetryStrategy] = None,
        timeout: float = 60.0,
        poll_interval: float = 2.0,
        operation_timeout: float = 300.0
    ):
        """Initialize automation account client.

        Args:
            subscription_id: Subscription that owns the account
            resource_group: Resource group of the account
            automation_account: Automation account name
            location: Region used when creating runbooks
            token: Bearer token for the management API
            publish: Publish each runbook after uploading its draft
            api_version: Management API version
            management_url: Base URL of the management API
            session: Optional preconfigured requests session
            retry_strategy: Retry strategy for transient HTTP failures
            timeout: Per-request timeout in seconds
            poll_interval: Seconds between polls of a long-running operation
            operation_timeout: Maximum seconds to wait for a long-running operation
        """
        self.location = location
        self.publish = publish
        self.api_version = api_version
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.operation_timeout = operation_timeout
        self.retry_strategy = retry_strategy or RetryStrategy()
        self.base_url = (
            f"{management_url.rstrip('/')}/subscriptions/{subscription_id}"
            f"/resourceGroups/{resource_group}"
            f"/providers/Microsoft.Automation/automationAccounts/{automation_account}"
        )
        self.session = session or requests.Session()
        self.session.headers.update({'Authorization': f"Bearer {token}"})

    def runbook_url(self, name: str, suffix: str = '') -> str:
        return f"{self.base_url}/runbooks/{quote(name, safe='')}{suffix}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        params = kwargs.pop('params', {})
        params.setdefault('api-version', self.api_version)
        response = self.session.request(method, url, params=params, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response

    def _call(self, method: str, url: str, artifact: Artifact, operation: str, **kwargs) -> requests.Response:
        try:
            response = self.retry_strategy.execute_with_retry(self._request, method, url, **kwargs)
        except Exception as e:
            raise error_handler.handle_exception(
                e,
                ErrorContext(artifact=artifact.name, source_path=artifact.source_path, operation=operation, url=url)
            ) from e

        if response.status_code == 202:
            self._wait_for_operation(response, artifact, operation)
        return response

    def _wait_for_operation(self, response: requests.Response, artifact: Artifact, operation: str) -> None:
        """Poll an accepted request until the target reports completion.

        An Azure-AsyncOperation URL reports the outcome in a ``status`` field;
        a Location URL answers 202 until the operation has finished.
        """
        status_url = response.headers.get('Azure-AsyncOperation')
        location = status_url or response.headers.get('Location')
        if not location:
            return

        context = ErrorContext(
            artifact=artifact.name, source_path=artifact.source_path, operation=operation, url=location
        )
        deadline = time.monotonic() + self.operation_timeout
        while True:
            delay = self._retry_after(response)
            if time.monotonic() + delay > deadline:
                raise ArtifactDeployError(
                    f"{operation} for {artifact.name} did not complete in {self.operation_timeout:.0f}s",
                    context=context
                )
            time.sleep(delay)

            try:
                response = self.session.get(location, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise error_handler.handle_exception(e, context) from e

            if status_url:
                if self._operation_finished(response, artifact, operation, context):
                    return
            elif response.status_code != 202:
                logger.debug(f"{operation} for {artifact.name} completed ({response.status_code})")
                return

    def _operation_finished(
        self,
        response: requests.Response,
        artifact: Artifact,
        operation: str,
        context: ErrorContext
    ) -> bool:
        try:
            body = response.json()
        except ValueError as e:
            raise ArtifactDeployError(
                f"{operation} for {artifact.name} returned an unreadable status", context=context
            ) from e

        status = str(body.get('status', ''))
        if status.lower() == 'succeeded':
            logger.debug(f"{operation} for {artifact.name} succeeded")
            return True
        if status.lower() in ('failed', 'canceled', 'cancelled'):
            error = body.get('error') or {}
            detail = error.get('message') or error.get('code') or 'no detail given'
            raise ArtifactDeployError(f"{operation} for {artifact.name} {status.lower()}: {detail}", context=context)
        return False

    def _retry_after(self, response: requests.Response) -> float:
        value = response.headers.get('Retry-After')
        if value is None:
            return self.poll_interval
        try:
            return max(float(value), 0.0)
        except ValueError:
            logger.debug(f"Ignoring non-numeric Retry-After header: {value}")
            return self.poll_interval

    def _runbook_body(self, artifact: Artifact) -> Dict:
        return {
            'name': artifact.name,
            'location': self.location,
            'properties': {
                'runbookType': artifact.kind.runbook_type,
                'logProgress': False,
                'logVerbose': False,
                'description': f"Deployed from {artifact.source_path}",
                'draft': {},
            },
        }

    def deploy(self, artifact: Artifact) -> None:
        """Create or replace the runbook, upload its content and publish it.

        Args:
            artifact: The artifact to deploy

        Raises:
            DeploymentError: If any step is rejected by the target
        """
        logger.info(f"Deploying {artifact.name} ({artifact.kind.runbook_type})...")

        self._call('PUT', self.runbook_url(artifact.name), artifact, 'create_runbook',
                   json=self._runbook_body(artifact))

        self._call('PUT', self.runbook_url(artifact.name, '/draft/content'), artifact, 'upload_draft',
                   data=artifact.content, headers={'Content-Type': 'text/powershell'})

        if self.publish:
            self._call('POST', self.runbook_url(artifact.name, '/publish'), artifact, 'publish')

    def close(self) -> None:
        self.session.close()

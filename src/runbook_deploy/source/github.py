"""GitHub source client built on the git trees REST API."""

from typing import Dict, List, Optional
from urllib.parse import quote

import requests

from runbook_deploy.source.models import EntryType, SourceEntry
from runbook_deploy.source.base import SourceClient
from runbook_deploy.utils.errors import ErrorContext, SourceError, error_handler
from runbook_deploy.utils.logging import get_logger
from runbook_deploy.utils.retry import RetryStrategy

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.github.com"


class GitHubSourceClient(SourceClient):
    """Lists a repository tree and downloads file content from GitHub."""

    def __init__(
        self,
        owner: str,
        repository: str,
        branch: str = "main",
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        session: Optional[requests.Session] = None,
        retry_strategy: Optional[RetryStrategy] = None,
        timeout: float = 30.0
    ):
        """Initialize GitHub source client.

        Args:
            owner: Repository owner (user or organisation)
            repository: Repository name
            branch: Branch, tag or commit to read
            token: Optional personal access token
            api_url: Base URL of the REST API
            session: Optional preconfigured requests session
            retry_strategy: Retry strategy for transient HTTP failures
            timeout: Per-request timeout in seconds
        """
        self.owner = owner
        self.repository = repository
        self.branch = branch
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.retry_strategy = retry_strategy or RetryStrategy()
        self.session = session or requests.Session()
        self.session.headers.update(self._build_headers(token))

    @staticmethod
    def _build_headers(token: Optional[str]) -> Dict[str, str]:
        headers = {
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28',
        }
        if token:
            headers['Authorization'] = f"Bearer {token}"
        return headers

    def _get(self, url: str, **kwargs) -> requests.Response:
        response = self.session.get(url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response

    def list_entries(self) -> List[SourceEntry]:
        """List the repository tree recursively.

        Returns:
            Tree and blob entries; blob URLs point at raw content

        Raises:
            DeploymentError: If the listing cannot be retrieved
        """
        url = (
            f"{self.api_url}/repos/{self.owner}/{self.repository}"
            f"/git/trees/{quote(self.branch, safe='')}"
        )
        logger.info(f"Listing {self.owner}/{self.repository}@{self.branch}...")

        try:
            response = self.retry_strategy.execute_with_retry(
                self._get, url, params={'recursive': '1'}
            )
        except Exception as e:
            error = error_handler.handle_exception(
                e, ErrorContext(operation='list_entries', url=url)
            )
            if error.is_fatal():
                raise error
            raise SourceError(
                f"Failed to list {self.owner}/{self.repository}@{self.branch}: {error.message}",
                context=error.context,
                cause=e,
                suggestions=error.suggestions
            ) from e

        body = response.json()
        if body.get('truncated'):
            logger.warning(
                "Tree listing was truncated by the API; some artifacts may be missing"
            )

        entries = []
        for item in body.get('tree', []):
            entry_type = item.get('type')
            if entry_type not in (EntryType.TREE.value, EntryType.BLOB.value):
                # Submodules are reported as commits
                continue
            entries.append(SourceEntry(
                path=item['path'],
                type=entry_type,
                url=self.raw_url(item['path']) if entry_type == EntryType.BLOB.value else None
            ))

        logger.info(f"Listed {len(entries)} entries")
        return entries

    def raw_url(self, path: str) -> str:
        """Build the contents API URL that serves a file's raw bytes."""
        return (
            f"{self.api_url}/repos/{self.owner}/{self.repository}/contents/"
            f"{quote(path)}?ref={quote(self.branch, safe='')}"
        )

    def fetch(self, url: str) -> bytes:
        """Download raw file content.

        Args:
            url: Contents URL produced by list_entries()

        Returns:
            Raw file bytes
        """
        response = self.retry_strategy.execute_with_retry(
            self._get, url, headers={'Accept': 'application/vnd.github.raw'}
        )
        return response.content

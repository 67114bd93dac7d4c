"""Source-tree collaborators."""

from runbook_deploy.source.models import EntryType, SourceEntry
from runbook_deploy.source.base import SourceClient
from runbook_deploy.source.github import GitHubSourceClient
from runbook_deploy.source.local import LocalSourceClient

__all__ = [
    'EntryType',
    'SourceEntry',
    'SourceClient',
    'GitHubSourceClient',
    'LocalSourceClient',
]

"""Source-tree collaborator interface."""

from abc import ABC, abstractmethod
from typing import List

from runbook_deploy.source.models import SourceEntry


class SourceClient(ABC):
    """Base class for source-tree listing and content retrieval."""

    @abstractmethod
    def list_entries(self) -> List[SourceEntry]:
        """List every entry of the source tree.

        Returns:
            Entries in listing order, folders tagged as tree and files as blob
        """
        pass

    @abstractmethod
    def fetch(self, url: str) -> bytes:
        """Retrieve raw content for a blob.

        Args:
            url: Retrieval location taken from a SourceEntry

        Returns:
            Raw content bytes
        """
        pass

"""Source client for a local checkout."""

from pathlib import Path
from typing import List, Union
from urllib.parse import urlparse
from urllib.request import url2pathname

from runbook_deploy.source.models import EntryType, SourceEntry
from runbook_deploy.source.base import SourceClient
from runbook_deploy.utils.errors import SourceError
from runbook_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class LocalSourceClient(SourceClient):
    """Lists a directory on disk in the same shape as a remote tree listing."""

    def __init__(self, path: Union[str, Path]):
        self.root = Path(path).resolve()

    def list_entries(self) -> List[SourceEntry]:
        """Walk the directory, folders before their contents, sorted by name.

        Raises:
            SourceError: If the directory does not exist
        """
        if not self.root.is_dir():
            raise SourceError(f"Source directory not found: {self.root}")

        entries = []
        for path in sorted(self.root.rglob('*')):
            relative = path.relative_to(self.root).as_posix()
            if any(part.startswith('.git') for part in path.relative_to(self.root).parts):
                continue
            if path.is_dir():
                entries.append(SourceEntry(path=relative, type=EntryType.TREE))
            elif path.is_file():
                entries.append(SourceEntry(path=relative, type=EntryType.BLOB, url=path.as_uri()))

        logger.info(f"Listed {len(entries)} entries under {self.root}")
        return entries

    def fetch(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme != 'file':
            raise ValueError(f"Local source can only fetch file:// URLs, got: {url}")
        return Path(url2pathname(parsed.path)).read_bytes()

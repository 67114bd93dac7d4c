"""Turns source-tree listings into typed artifacts."""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence, Set

from runbook_deploy.artifacts.models import (
    Artifact,
    ArtifactKind,
    SUPPORTED_EXTENSIONS,
)
from runbook_deploy.artifacts.storage import LocalStorage
from runbook_deploy.source.base import SourceClient
from runbook_deploy.source.models import SourceEntry
from runbook_deploy.utils.errors import (
    DeploymentError,
    DuplicateArtifactError,
    ErrorContext,
    RetrievalError,
    error_handler,
)
from runbook_deploy.utils.logging import get_logger, LogContext

logger = get_logger(__name__)


@dataclass
class CollectionFailure:
    """A blob whose content could not be retrieved."""

    source_path: str
    error: DeploymentError


@dataclass
class CollectionResult:
    """Outcome of one collection pass."""

    artifacts: List[Artifact] = field(default_factory=list)
    failures: List[CollectionFailure] = field(default_factory=list)
    folders: Set[str] = field(default_factory=set)
    skipped: int = 0

    def has_failures(self) -> bool:
        return len(self.failures) > 0

    def get_artifact(self, name: str) -> Optional[Artifact]:
        for artifact in self.artifacts:
            if artifact.name == name:
                return artifact
        return None


class ArtifactCollector:
    """Collects deployable artifacts from a source tree."""

    def __init__(
        self,
        source_client: SourceClient,
        storage: LocalStorage,
        root_folder: str = '',
        extensions: Sequence[str] = SUPPORTED_EXTENSIONS
    ):
        """Initialize artifact collector.

        Args:
            source_client: Collaborator that lists and retrieves content
            storage: Scratch storage for retrieved content
            root_folder: Folder inside the source tree that holds the artifacts
            extensions: File extensions treated as artifacts

        Raises:
            UnrecognizedArtifactKindError: If an extension maps to no artifact kind
        """
        self.source_client = source_client
        self.storage = storage
        self.root_folder = root_folder.strip('/')
        self.extensions = tuple(ext.lower() if ext.startswith('.') else f".{ext.lower()}" for ext in extensions)

        # Every configured extension must classify before anything is downloaded
        for extension in self.extensions:
            ArtifactKind.classify(f"probe{extension}", b'')

    def collect(self, entries: Optional[Iterable[SourceEntry]] = None) -> CollectionResult:
        """Collect artifacts from a listing.

        Args:
            entries: Listing to use; fetched from the source client when omitted

        Returns:
            CollectionResult with artifacts in listing order

        Raises:
            DuplicateArtifactError: If two source paths yield the same artifact name
            DeploymentError: If retrieval fails with a fatal (credential) error
        """
        if entries is None:
            entries = self.source_client.list_entries()

        result = CollectionResult()
        seen_names: Dict[str, str] = {}

        for entry in entries:
            relative = self._relative_path(entry.path)
            if relative is None:
                continue

            if not entry.is_blob:
                result.folders.add(relative.as_posix())
                continue

            if entry.extension not in self.extensions:
                result.skipped += 1
                continue

            name = relative.stem
            key = name.casefold()
            if key in seen_names:
                raise DuplicateArtifactError(name, seen_names[key], entry.path)
            seen_names[key] = entry.path

            artifact = self._materialize(entry, name, relative, result)
            if artifact is not None:
                result.artifacts.append(artifact)

        logger.info(
            f"Collected {len(result.artifacts)} artifacts "
            f"({len(result.failures)} retrieval failures, {result.skipped} other files)"
        )
        return result

    def _relative_path(self, path: str) -> Optional[PurePosixPath]:
        """Path below the root folder, or None when outside it."""
        full = PurePosixPath(path.strip('/'))
        if not self.root_folder:
            return full
        root = PurePosixPath(self.root_folder)
        if full == root:
            return None
        try:
            return full.relative_to(root)
        except ValueError:
            return None

    def _materialize(
        self,
        entry: SourceEntry,
        name: str,
        relative: PurePosixPath,
        result: CollectionResult
    ) -> Optional[Artifact]:
        """Retrieve, store and classify one blob; None when retrieval failed."""
        with LogContext(logger, artifact=name, operation='collect'):
            try:
                if not entry.url:
                    raise RetrievalError(f"No retrieval URL for {entry.path}")
                content = self.source_client.fetch(entry.url)
                local_path = self.storage.write(entry.path, content)
            except Exception as e:
                error = error_handler.handle_exception(
                    e, ErrorContext(artifact=name, source_path=entry.path, operation='fetch', url=entry.url)
                )
                if error.is_fatal():
                    raise error
                logger.warning(f"Skipping {entry.path}: content could not be retrieved ({error.message})")
                result.failures.append(CollectionFailure(source_path=entry.path, error=error))
                return None

            artifact = Artifact(
                name=name,
                source_path=entry.path,
                source_url=entry.url,
                kind=ArtifactKind.classify(entry.path, content),
                folder_depth=len(relative.parts) - 1,
                content=content,
                local_path=str(local_path),
                root_folder=self.root_folder,
            )
            logger.debug(f"Collected artifact: {artifact.to_summary()}")
            return artifact

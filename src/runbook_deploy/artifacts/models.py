"""Artifact data models."""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Dict, List, Optional

from runbook_deploy.utils.errors import UnrecognizedArtifactKindError, ErrorContext


# Matches a workflow declaration such as "workflow Invoke-Backup {"
_WORKFLOW_DECLARATION = re.compile(r'^\s*workflow\s+[\w-]+', re.IGNORECASE)
_BLOCK_COMMENT = re.compile(r'<#.*?#>', re.DOTALL)


def _is_workflow(content: bytes) -> bool:
    """Check whether script content opens with a workflow declaration."""
    text = _BLOCK_COMMENT.sub('', content.decode('utf-8-sig', errors='replace'))
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue
        return bool(_WORKFLOW_DECLARATION.match(stripped))
    return False


class ArtifactKind(Enum):
    """Closed set of deployable artifact kinds."""
    SCRIPT = "Script"
    WORKFLOW_SCRIPT = "WorkflowScript"
    GRAPH_DEFINITION = "GraphDefinition"

    @classmethod
    def classify(cls, path: str, content: bytes) -> "ArtifactKind":
        """Determine the kind of an artifact from its extension and content.

        Args:
            path: Source path of the file
            content: Raw file content

        Returns:
            The artifact kind

        Raises:
            UnrecognizedArtifactKindError: If the extension maps to no kind
        """
        extension = PurePosixPath(path).suffix.lower()
        if extension == '.graphrunbook':
            return cls.GRAPH_DEFINITION
        if extension == '.ps1':
            return cls.WORKFLOW_SCRIPT if _is_workflow(content) else cls.SCRIPT
        raise UnrecognizedArtifactKindError(
            f"Cannot determine artifact kind for extension '{extension or '(none)'}'",
            context=ErrorContext(source_path=path, operation='classify'),
            suggestions=[
                f"Supported extensions: {', '.join(SUPPORTED_EXTENSIONS)}",
                'Remove the extension from deployment.extensions'
            ]
        )

    @property
    def runbook_type(self) -> str:
        """Runbook type name used by the automation account API."""
        if self is ArtifactKind.SCRIPT:
            return "PowerShell"
        if self is ArtifactKind.WORKFLOW_SCRIPT:
            return "PowerShellWorkflow"
        if self is ArtifactKind.GRAPH_DEFINITION:
            return "GraphPowerShell"
        raise UnrecognizedArtifactKindError(f"No runbook type for kind {self!r}")


SUPPORTED_EXTENSIONS = ('.ps1', '.graphrunbook')


@dataclass
class Artifact:
    """A single deployable unit discovered in the source tree."""

    name: str
    source_path: str
    source_url: str
    kind: ArtifactKind
    folder_depth: int
    content: bytes = field(default=b'', repr=False)
    local_path: Optional[str] = None
    root_folder: str = ''

    def __post_init__(self):
        if not self.name:
            raise ValueError(f"Artifact name must be non-empty (path: {self.source_path})")
        if self.folder_depth < 0:
            raise ValueError(f"Artifact folder depth cannot be negative: {self.folder_depth}")

    @property
    def folder(self) -> str:
        """Containing folder relative to the root folder ('' for the root itself)."""
        parent = PurePosixPath(self.source_path.strip('/')).parent
        if self.root_folder:
            parent = parent.relative_to(self.root_folder.strip('/'))
        return '' if str(parent) == '.' else str(parent)

    @property
    def ancestors(self) -> List[str]:
        """Folder chain from the root down to the containing folder, inclusive."""
        chain = ['']
        parts = PurePosixPath(self.folder).parts if self.folder else ()
        for i in range(len(parts)):
            chain.append('/'.join(parts[:i + 1]))
        return chain

    def to_summary(self) -> Dict[str, object]:
        """Summary fields for logs and reports."""
        return {
            'name': self.name,
            'source_path': self.source_path,
            'kind': self.kind.value,
            'folder_depth': self.folder_depth,
            'size': len(self.content),
        }

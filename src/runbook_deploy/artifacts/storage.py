"""Scratch storage for downloaded artifact content."""

from pathlib import Path, PurePosixPath
from typing import Union

from runbook_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class LocalStorage:
    """Writes artifact content to a scratch directory.

    Files are keyed by their source path, so two files with the same name in
    different folders get separate scratch files.
    """

    def __init__(self, scratch_dir: Union[str, Path]):
        """Initialize local storage.

        Args:
            scratch_dir: Directory that receives downloaded content
        """
        self.scratch_dir = Path(scratch_dir)

    def path_for(self, source_path: str) -> Path:
        """Get the scratch location for a source path.

        Args:
            source_path: Path of the file in the source tree

        Returns:
            Absolute scratch path

        Raises:
            ValueError: If the source path escapes the scratch directory
        """
        relative = PurePosixPath(source_path.lstrip('/'))
        if '..' in relative.parts:
            raise ValueError(f"Source path escapes scratch directory: {source_path}")
        return self.scratch_dir.joinpath(*relative.parts)

    def write(self, source_path: str, content: bytes) -> Path:
        """Persist content for a source path.

        Args:
            source_path: Path of the file in the source tree
            content: Raw content bytes

        Returns:
            Path of the written file
        """
        target = self.path_for(source_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.debug(f"Stored {len(content)} bytes for {source_path} at {target}")
        return target

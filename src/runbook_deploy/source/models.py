"""Source-tree listing models."""

from enum import Enum
from pathlib import PurePosixPath
from typing import Optional

from pydantic import BaseModel, Field


class EntryType(str, Enum):
    """Type of an entry in a source-tree listing."""
    TREE = "tree"
    BLOB = "blob"


class SourceEntry(BaseModel):
    """One entry of a source-tree listing."""

    path: str = Field(..., min_length=1, description="Path relative to the repository root")
    type: EntryType = Field(..., description="tree (folder) or blob (file)")
    url: Optional[str] = Field(None, description="Retrieval location for blob content")

    @property
    def is_blob(self) -> bool:
        return self.type == EntryType.BLOB

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lower()

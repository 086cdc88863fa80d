"""Plain value projections of repository data.

Nothing in here holds a reference to a dulwich object, so instances stay
valid after the repository handle that produced them has been closed.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class BrowseType(str, Enum):
    DIRECTORY = "directory"
    REPOSITORY = "repository"


@dataclass(frozen=True)
class RepositoryLocation:
    root_path: str
    repository_name: str
    sub_path: str = ""


@dataclass(frozen=True)
class BrowseDirectory:
    name: str
    path: str
    path_without_extension: str
    type: BrowseType


@dataclass(frozen=True)
class CommitMessage:
    hash: str
    short_hash: str
    message: str
    author_name: str
    author_email: str
    timestamp: datetime


@dataclass(frozen=True)
class TreeEntry:
    name: str
    path: str
    kind: EntryKind

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


@dataclass
class RepositoryTree:
    entries: List[TreeEntry] = field(default_factory=list)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    @property
    def files(self) -> List[TreeEntry]:
        return [e for e in self.entries if e.is_file]

    @property
    def directories(self) -> List[TreeEntry]:
        return [e for e in self.entries if e.is_directory]


@dataclass
class RepositoryBlob:
    file_name: str
    raw_content: bytes
    content: str = ""
    # filled in by the view that knows its own url layout
    raw_url: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.raw_content)


@dataclass(frozen=True)
class ZipArchive:
    name: str
    data: bytes


@dataclass(frozen=True)
class FileChange:
    change_type: str
    path: str


@dataclass(frozen=True)
class CommitDetail:
    commit: CommitMessage
    parents: Tuple[str, ...]
    changes: Tuple[FileChange, ...]

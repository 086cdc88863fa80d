"""Read-only operations over one repository.

Every public function opens its own dulwich ``Repo`` for the duration of the
call and returns plain projections from :mod:`repo_browser.models`.
"""
import logging
import re
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import islice
from typing import Callable, Iterator, List, Optional

from dulwich.diff_tree import tree_changes
from dulwich.errors import NotGitRepository
from dulwich.objects import Commit
from dulwich.repo import Repo

from .archive import archive_name, build_archive
from .errors import NoBranchesError, RepositoryAccessError
from .helpers import (
    DirectoryNode,
    FileNode,
    decode_text,
    iter_children,
    load_object,
    parse_author,
    read_blob,
    resolve_directory,
    resolve_file,
    root_directory,
)
from .models import (
    CommitDetail,
    CommitMessage,
    EntryKind,
    FileChange,
    RepositoryBlob,
    RepositoryLocation,
    RepositoryTree,
    TreeEntry,
    ZipArchive,
)

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "master"
SHORT_HASH_LENGTH = 7
HEADS = b"refs/heads/"
SYMREF = b"ref: "

_COMMIT_ID = re.compile(r"^[0-9a-f]{40}$")


@dataclass(frozen=True)
class Branch:
    name: str
    head: bytes


@contextmanager
def open_store(location: RepositoryLocation):
    try:
        repo = Repo(location.root_path)
    except (NotGitRepository, OSError) as exc:
        raise RepositoryAccessError(f"Cannot open repository at {location.root_path}: {exc}") from exc
    try:
        yield repo
    finally:
        repo.close()


def _branches(repo) -> dict:
    return {name.decode("utf-8", errors="replace"): sha for name, sha in repo.refs.as_dict(HEADS).items()}


def _current_branch_name(repo) -> Optional[str]:
    head = repo.refs.read_ref(b"HEAD")
    if head and head.startswith(SYMREF + HEADS):
        return head[len(SYMREF + HEADS):].decode("utf-8", errors="replace")
    return None


def resolve_branch(repo, requested_name: str) -> Optional[Branch]:
    branches = _branches(repo)
    if requested_name in branches:
        return Branch(requested_name, branches[requested_name])

    current = _current_branch_name(repo)
    if current in branches:
        logger.debug("Branch %r not found, using checked out branch %r", requested_name, current)
        return Branch(current, branches[current])

    if branches:
        first = sorted(branches)[0]
        logger.debug("Branch %r not found, falling back to %r", requested_name, first)
        return Branch(first, branches[first])

    return None


def _branch_name(branch: Optional[str]) -> str:
    return branch or DEFAULT_BRANCH


def _head_commit(repo, branch_name: str) -> Commit:
    branch = resolve_branch(repo, branch_name)
    if branch is None:
        raise NoBranchesError("Repository has no branches")
    return load_object(repo, branch.head, Commit)


def _commit_message(commit: Commit) -> CommitMessage:
    sha = commit.id.decode("ascii")
    name, email = parse_author(commit.author)
    encoding = (commit.encoding or b"utf-8").decode("ascii", errors="replace")
    try:
        message = commit.message.decode(encoding, errors="replace")
    except LookupError:
        message = commit.message.decode("utf-8", errors="replace")
    return CommitMessage(
        hash=sha,
        short_hash=sha[:SHORT_HASH_LENGTH],
        message=message.rstrip("\n"),
        author_name=name,
        author_email=email,
        timestamp=datetime.fromtimestamp(commit.commit_time, tz=timezone.utc),
    )


def _cut_off(repo, shallow, commit: Commit, parent: bytes) -> bool:
    # shallow clones record the boundary commits, their parents were never fetched
    return commit.id in shallow or (parent in shallow and parent not in repo.object_store)


def walk(repo, head: Commit, shallow=frozenset()) -> Iterator[Commit]:
    queue = deque([head])
    seen = {head.id}
    while queue:
        commit = queue.popleft()
        yield commit
        for parent in commit.parents:
            if parent in seen or _cut_off(repo, shallow, commit, parent):
                continue
            seen.add(parent)
            queue.append(load_object(repo, parent, Commit))


def _change_path(entry) -> Optional[bytes]:
    return entry.path if entry is not None else None


def project_tree(repo, commit: Commit, sub_path: str) -> RepositoryTree:
    result = RepositoryTree()
    directory = resolve_directory(repo, root_directory(commit), sub_path)
    if directory is None:
        return result

    for child in iter_children(repo, directory):
        if isinstance(child, FileNode):
            result.entries.append(TreeEntry(name=child.name, path=child.path, kind=EntryKind.FILE))
        elif isinstance(child, DirectoryNode):
            result.entries.append(TreeEntry(name=child.name, path=child.path, kind=EntryKind.DIRECTORY))
    return result


def read_file(repo, commit: Commit, sub_path: str) -> Optional[RepositoryBlob]:
    node = resolve_file(repo, root_directory(commit), sub_path)
    if node is None:
        return None
    raw = read_blob(repo, node)
    return RepositoryBlob(file_name=node.name, raw_content=raw, content=decode_text(raw))


def find_in_directory(repo, commit: Commit, sub_path: str, predicate: Callable[[str], bool]) -> str:
    directory = resolve_directory(repo, root_directory(commit), sub_path)
    if directory is None:
        return ""
    for child in iter_children(repo, directory):
        if isinstance(child, FileNode) and predicate(child.name):
            return decode_text(read_blob(repo, child))
    return ""


def list_branches(location: RepositoryLocation) -> List[str]:
    with open_store(location) as repo:
        return sorted(_branches(repo))


def get_history(location: RepositoryLocation, branch: str = "", skip: int = 0, take: Optional[int] = None) -> List[CommitMessage]:
    skip = max(skip or 0, 0)
    stop = None if take is None else skip + max(take, 0)
    with open_store(location) as repo:
        head = _head_commit(repo, _branch_name(branch))
        return [_commit_message(c) for c in islice(walk(repo, head, repo.get_shallow()), skip, stop)]


def get_commit(location: RepositoryLocation, commit_hash: str) -> Optional[CommitDetail]:
    commit_hash = (commit_hash or "").lower()
    if not _COMMIT_ID.match(commit_hash):
        return None
    with open_store(location) as repo:
        try:
            commit = repo.object_store[commit_hash.encode("ascii")]
        except KeyError:
            return None
        if not isinstance(commit, Commit):
            return None

        changes = []
        parent = commit.parents[0] if commit.parents else None
        if parent is None or not _cut_off(repo, repo.get_shallow(), commit, parent):
            old_tree = load_object(repo, parent, Commit).tree if parent is not None else None
            for change in tree_changes(repo.object_store, old_tree, commit.tree):
                path = _change_path(change.new) or _change_path(change.old)
                changes.append(FileChange(change_type=change.type, path=path.decode("utf-8", errors="replace")))

        return CommitDetail(
            commit=_commit_message(commit),
            parents=tuple(p.decode("ascii") for p in commit.parents),
            changes=tuple(changes),
        )


def get_tree(location: RepositoryLocation, branch: str = "") -> RepositoryTree:
    with open_store(location) as repo:
        commit = _head_commit(repo, _branch_name(branch))
        return project_tree(repo, commit, location.sub_path)


def get_blob(location: RepositoryLocation, branch: str = "") -> Optional[RepositoryBlob]:
    with open_store(location) as repo:
        commit = _head_commit(repo, _branch_name(branch))
        return read_file(repo, commit, location.sub_path)


def find_file(location: RepositoryLocation, branch: str, predicate: Callable[[str], bool]) -> str:
    with open_store(location) as repo:
        commit = _head_commit(repo, _branch_name(branch))
        return find_in_directory(repo, commit, location.sub_path, predicate)


def export_archive(location: RepositoryLocation, branch: str = "") -> ZipArchive:
    branch_name = _branch_name(branch)
    with open_store(location) as repo:
        commit = _head_commit(repo, branch_name)
        return build_archive(repo, root_directory(commit), archive_name(location.repository_name, branch_name))

import codecs
import logging
import stat
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from dulwich.objects import S_ISGITLINK, Blob, Commit, Tree

from .errors import CorruptRepositoryError

logger = logging.getLogger(__name__)

# UTF-32 LE starts with the UTF-16 LE mark. A UTF-8 BOM is left in the text
# so the decoded content encodes back to the raw bytes.
_BOMS = (
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


@dataclass(frozen=True)
class DirectoryNode:
    name: str
    path: str
    sha: bytes


@dataclass(frozen=True)
class FileNode:
    name: str
    path: str
    sha: bytes
    mode: int


TreeNode = Union[DirectoryNode, FileNode]


def load_object(repo, sha: bytes, expected_type):
    try:
        obj = repo[sha]
    except KeyError as exc:
        raise CorruptRepositoryError(f"Object {sha.decode('ascii', 'replace')} is missing") from exc
    if not isinstance(obj, expected_type):
        raise CorruptRepositoryError(
            f"Object {sha.decode('ascii', 'replace')} is a {obj.type_name.decode()}, "
            f"expected {expected_type.type_name.decode()}"
        )
    return obj


def parse_author(author: bytes):
    text = author.decode("utf-8", errors="replace")
    name, _, rest = text.partition("<")
    email = rest.split(">", 1)[0]
    return name.strip(), email.strip()


def join_path(parent: str, name: str) -> str:
    return f"{parent}/{name}".lstrip("/")


def root_directory(commit: Commit) -> DirectoryNode:
    return DirectoryNode(name="", path="", sha=commit.tree)


def iter_children(repo, directory: DirectoryNode) -> Iterator[TreeNode]:
    tree = load_object(repo, directory.sha, Tree)
    for entry in tree.items():
        name = entry.path.decode("utf-8", errors="replace")
        path = join_path(directory.path, name)
        if stat.S_ISDIR(entry.mode):
            yield DirectoryNode(name=name, path=path, sha=entry.sha)
        elif S_ISGITLINK(entry.mode):
            # submodule commits live in another repository
            continue
        else:
            yield FileNode(name=name, path=path, sha=entry.sha, mode=entry.mode)


def _find_child(repo, directory: DirectoryNode, name: str) -> Optional[TreeNode]:
    return next((c for c in iter_children(repo, directory) if c.name == name), None)


def resolve_directory(repo, root: DirectoryNode, sub_path: str) -> Optional[DirectoryNode]:
    current = root
    for part in [p for p in sub_path.strip("/").split("/") if p]:
        child = _find_child(repo, current, part)
        if not isinstance(child, DirectoryNode):
            return None
        current = child
    return current


def resolve_file(repo, root: DirectoryNode, sub_path: str) -> Optional[FileNode]:
    parent_path, _, leaf = sub_path.strip("/").rpartition("/")
    if not leaf:
        return None
    parent = resolve_directory(repo, root, parent_path)
    if parent is None:
        return None
    child = _find_child(repo, parent, leaf)
    return child if isinstance(child, FileNode) else None


def read_blob(repo, node: FileNode) -> bytes:
    return load_object(repo, node.sha, Blob).as_raw_string()


def decode_text(raw: bytes) -> str:
    encoding = next((enc for bom, enc in _BOMS if raw.startswith(bom)), "utf-8")
    try:
        return raw.decode(encoding)
    except UnicodeDecodeError:
        logger.debug("Content is not %s text, leaving it undecoded", encoding)
        return ""


def is_readme(file_name: str) -> bool:
    return file_name.upper().startswith("README")

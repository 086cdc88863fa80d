import logging
import os
from pathlib import Path

from .errors import InvalidLocationError, RepositoryNotFoundError
from .models import BrowseDirectory, BrowseType, RepositoryLocation

logger = logging.getLogger(__name__)

GIT_SUFFIX = ".git"


def split_path(requested_path):
    norm = (requested_path or "").replace("\\", "/")
    parts = [p for p in norm.split("/") if p and p != "."]
    if ".." in parts:
        raise InvalidLocationError(f"Path '{requested_path}' leaves the repository root")
    if any(":" in p or "\0" in p for p in parts):
        raise InvalidLocationError(f"Path '{requested_path}' is not a relative path")
    return parts


def is_repository(path: Path) -> bool:
    if (path / ".git").exists():
        return True
    return (path / "HEAD").is_file() and (path / "objects").is_dir() and (path / "refs").is_dir()


def strip_git_suffix(name: str) -> str:
    if name.endswith(GIT_SUFFIX) and len(name) > len(GIT_SUFFIX):
        return name[: -len(GIT_SUFFIX)]
    return name


def _inside(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def resolve_location(requested_path, roots) -> RepositoryLocation:
    parts = split_path(requested_path)
    if not parts:
        raise InvalidLocationError("No repository path given")

    for root in roots:
        root = Path(root).resolve()
        for i in range(1, len(parts) + 1):
            candidate = root.joinpath(*parts[:i])
            if not candidate.is_dir():
                break
            if not is_repository(candidate):
                continue
            real = candidate.resolve()
            if not _inside(real, root):
                raise InvalidLocationError(f"Path '{requested_path}' resolves outside {root}")
            location = RepositoryLocation(
                root_path=str(real),
                repository_name=strip_git_suffix(parts[i - 1]),
                sub_path="/".join(parts[i:]),
            )
            logger.debug("Resolved %r to %s (sub path %r)", requested_path, location.root_path, location.sub_path)
            return location

    raise RepositoryNotFoundError(f"No repository found at '{requested_path}'")


def browse(requested_path, roots):
    parts = split_path(requested_path)
    found = {}
    for root in roots:
        root = Path(root).resolve()
        directory = root.joinpath(*parts)
        if not directory.is_dir() or not _inside(directory.resolve(), root):
            continue
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.name.startswith(".") or not entry.is_dir():
                    continue
                if entry.name in found:
                    continue
                rel_path = "/".join(parts + [entry.name])
                found[entry.name] = BrowseDirectory(
                    name=entry.name,
                    path=rel_path,
                    path_without_extension=strip_git_suffix(rel_path),
                    type=BrowseType.REPOSITORY if is_repository(Path(entry.path)) else BrowseType.DIRECTORY,
                )
    return [found[name] for name in sorted(found)]

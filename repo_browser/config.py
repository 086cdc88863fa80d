from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class GitServerConfig:
    repository_roots: tuple

    @classmethod
    def from_roots(cls, roots) -> "GitServerConfig":
        resolved = tuple(Path(root).expanduser().resolve() for root in roots if root)
        return cls(repository_roots=resolved)

    @classmethod
    def from_settings(cls, settings) -> "GitServerConfig":
        options = getattr(settings, "GIT_SERVER", None) or {}
        roots = options.get("REPOSITORY_ROOTS", [])
        if isinstance(roots, (str, Path)):
            roots = [roots]
        return cls.from_roots(roots)

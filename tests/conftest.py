import os
import stat
from dataclasses import dataclass

import django
import pytest
from django.apps import apps
from dulwich.objects import S_IFGITLINK, Blob, Commit, Tree
from dulwich.repo import Repo

from repo_browser.config import GitServerConfig
from repo_browser.location import resolve_location

AUTHOR = b"Ada Lovelace <ada@example.com>"
HEADS = b"refs/heads/"
FILE_MODE = 0o100644


@dataclass(frozen=True)
class Gitlink:
    sha: bytes


SAMPLE_FILES = {
    "README.md": b"# Demo\n\nA small repository.\n",
    "setup.cfg": b"[metadata]\nname = demo\n",
    "src/app.py": b"print('hello')\n",
    "src/lib/util.py": b"ANSWER = 42\n",
    "docs/README.txt": b"Documentation lives here.\n",
    "docs/guide.md": b"# Guide\n",
    "assets/logo.bin": bytes(range(256)),
}


def pytest_configure(config):
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "gitserver.settings")
    os.environ["GIT_SERVER_ROOTS"] = ""
    django.setup()

    from django.test.utils import setup_test_environment
    setup_test_environment()


def pytest_unconfigure(config):
    from django.test.utils import teardown_test_environment
    teardown_test_environment()


class RepoBuilder:
    def __init__(self, path):
        path.mkdir(parents=True)
        self.path = path
        self.repo = Repo.init_bare(str(path))
        self.clock = 1700000000
        self.set_head("master")

    def _write_tree(self, files):
        tree = Tree()
        subdirs = {}
        for path, data in files.items():
            head, _, rest = path.partition("/")
            if rest:
                subdirs.setdefault(head, {})[rest] = data
            elif isinstance(data, Gitlink):
                tree.add(head.encode(), S_IFGITLINK, data.sha)
            else:
                blob = Blob.from_string(data)
                self.repo.object_store.add_object(blob)
                tree.add(head.encode(), FILE_MODE, blob.id)
        for name, sub in subdirs.items():
            tree.add(name.encode(), stat.S_IFDIR, self._write_tree(sub))
        self.repo.object_store.add_object(tree)
        return tree.id

    def commit(self, files, message="commit", parents=(), branch=None):
        self.clock += 60
        commit = Commit()
        commit.tree = self._write_tree(files)
        commit.parents = list(parents)
        commit.author = commit.committer = AUTHOR
        commit.author_time = commit.commit_time = self.clock
        commit.author_timezone = commit.commit_timezone = 0
        commit.encoding = b"UTF-8"
        commit.message = message.encode("utf-8")
        self.repo.object_store.add_object(commit)
        if branch:
            self.set_branch(branch, commit.id)
        return commit.id

    def set_branch(self, name, commit_id):
        self.repo.refs[HEADS + name.encode()] = commit_id

    def set_head(self, name):
        self.repo.refs.set_symbolic_ref(b"HEAD", HEADS + name.encode())

    def mark_shallow(self, *commit_ids):
        self.repo.update_shallow(list(commit_ids), [])

    def close(self):
        self.repo.close()


@pytest.fixture
def repo_root(tmp_path):
    root = tmp_path / "repositories"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def make_repo(repo_root):
    builders = []

    def factory(name):
        builder = RepoBuilder(repo_root / name)
        builders.append(builder)
        return builder

    yield factory
    for builder in builders:
        builder.close()


@pytest.fixture
def sample_repo(make_repo):
    builder = make_repo("demo.git")
    first = builder.commit({"README.md": SAMPLE_FILES["README.md"]}, "Initial commit", branch="master")
    partial = {k: v for k, v in SAMPLE_FILES.items() if k == "README.md" or k.startswith("src/")}
    second = builder.commit(partial, "Add sources", parents=[first], branch="master")
    third = builder.commit(SAMPLE_FILES, "Add docs and assets", parents=[second], branch="master")
    feature_files = dict(partial, **{"src/feature.py": b"FEATURE = True\n"})
    builder.commit(feature_files, "Start feature", parents=[second], branch="feature")
    builder.commits = [first, second, third]
    return builder


@pytest.fixture
def locate(repo_root):
    def _locate(path):
        return resolve_location(path, [repo_root])
    return _locate


@pytest.fixture
def server_roots(monkeypatch, repo_root):
    app_config = apps.get_app_config("repo_browser")
    monkeypatch.setattr(app_config, "server_config", GitServerConfig.from_roots([repo_root]))
    return repo_root

import os

import pytest
from dulwich.repo import Repo

from repo_browser import location
from repo_browser.errors import InvalidLocationError, RepositoryNotFoundError
from repo_browser.location import browse, resolve_location, split_path, strip_git_suffix
from repo_browser.models import BrowseType


class TestSplitPath:
    def test_normalizes_separators(self):
        assert split_path("\\team\\demo.git//src/./lib/") == ["team", "demo.git", "src", "lib"]

    def test_empty(self):
        assert split_path("") == []
        assert split_path(None) == []

    @pytest.mark.parametrize("path", ["../etc", "demo.git/../../x", "demo.git\\..\\x"])
    def test_rejects_parent_segments(self, path):
        with pytest.raises(InvalidLocationError):
            split_path(path)

    def test_rejects_drive_letters(self):
        with pytest.raises(InvalidLocationError):
            split_path("C:/repos/demo")


def test_strip_git_suffix():
    assert strip_git_suffix("demo.git") == "demo"
    assert strip_git_suffix("demo") == "demo"
    assert strip_git_suffix(".git") == ".git"


class TestResolveLocation:
    def test_bare_repository(self, sample_repo, repo_root):
        location = resolve_location("demo.git", [repo_root])
        assert location.root_path == str(repo_root / "demo.git")
        assert location.repository_name == "demo"
        assert location.sub_path == ""

    def test_sub_path(self, sample_repo, repo_root):
        location = resolve_location("/demo.git/src/lib/", [repo_root])
        assert location.repository_name == "demo"
        assert location.sub_path == "src/lib"

    def test_repository_inside_group(self, make_repo, repo_root):
        make_repo("team/tools.git")
        location = resolve_location("team/tools.git/README.md", [repo_root])
        assert location.root_path == str(repo_root / "team" / "tools.git")
        assert location.repository_name == "tools"
        assert location.sub_path == "README.md"

    def test_working_tree_repository(self, repo_root):
        Repo.init(str(repo_root / "checkout"), mkdir=True).close()
        location = resolve_location("checkout/docs", [repo_root])
        assert location.root_path == str(repo_root / "checkout")
        assert location.repository_name == "checkout"
        assert location.sub_path == "docs"

    def test_later_root_is_searched(self, make_repo, repo_root, tmp_path):
        make_repo("demo.git")
        empty_root = tmp_path / "empty"
        empty_root.mkdir()
        location = resolve_location("demo.git", [empty_root, repo_root])
        assert location.root_path == str(repo_root / "demo.git")

    def test_missing_repository(self, repo_root):
        with pytest.raises(RepositoryNotFoundError):
            resolve_location("nothing/here", [repo_root])

    def test_plain_directory_is_not_a_repository(self, repo_root):
        (repo_root / "plain" / "deeper").mkdir(parents=True)
        with pytest.raises(RepositoryNotFoundError):
            resolve_location("plain/deeper", [repo_root])

    def test_empty_path(self, repo_root):
        with pytest.raises(InvalidLocationError):
            resolve_location("", [repo_root])

    def test_parent_traversal_rejected(self, sample_repo, repo_root):
        with pytest.raises(InvalidLocationError):
            resolve_location("demo.git/../demo.git", [repo_root])

    def test_symlink_outside_root_rejected(self, repo_root, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        Repo.init_bare(str(outside)).close()
        os.symlink(outside, repo_root / "escape.git")
        with pytest.raises(InvalidLocationError):
            resolve_location("escape.git", [repo_root])


class TestBrowse:
    def test_lists_directories_and_repositories(self, make_repo, repo_root):
        make_repo("demo.git")
        make_repo("team/tools.git")
        (repo_root / ".hidden").mkdir()
        (repo_root / "notes.txt").write_text("not a directory")

        entries = browse("", [repo_root])

        assert [e.name for e in entries] == ["demo.git", "team"]
        demo, team = entries
        assert demo.type == BrowseType.REPOSITORY
        assert demo.path_without_extension == "demo"
        assert team.type == BrowseType.DIRECTORY

    def test_nested_directory(self, make_repo, repo_root):
        make_repo("team/tools.git")
        entries = browse("team", [repo_root])
        assert len(entries) == 1
        assert entries[0].path == "team/tools.git"
        assert entries[0].path_without_extension == "team/tools"

    def test_missing_directory_is_empty(self, repo_root):
        assert browse("does/not/exist", [repo_root]) == []

    def test_merges_roots(self, make_repo, repo_root, tmp_path):
        make_repo("demo.git")
        other = tmp_path / "other"
        (other / "archive").mkdir(parents=True)
        names = [e.name for e in browse("", [repo_root, other])]
        assert names == ["archive", "demo.git"]

    def test_closes_directory_listing(self, make_repo, repo_root, monkeypatch):
        make_repo("demo.git")
        listings = []
        real_scandir = os.scandir

        class Listing:
            def __init__(self, path):
                self.entries = real_scandir(path)
                self.closed = False
                listings.append(self)

            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                self.entries.close()
                self.closed = True

            def __iter__(self):
                return iter(self.entries)

        monkeypatch.setattr(location.os, "scandir", Listing)
        assert [e.name for e in browse("", [repo_root])] == ["demo.git"]
        assert listings and all(listing.closed for listing in listings)

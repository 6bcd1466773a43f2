"""
Tests for the Tree Reconciler.

Runs against real directories under tmp_path; no git involved.
"""

import os
import shutil
from pathlib import Path
from unittest import mock

import pytest

from g2g.config.loader import DEFAULT_EXCLUDES
from g2g.errors import ReconcileError
from g2g.mirror.reconcile import ExcludeMatcher, build_matcher, reconcile_tree


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write(root: Path, rel: str, content: str = "x") -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def _tree(root: Path):
    """Relative POSIX paths of every file and symlink under root, minus .git."""
    found = set()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d != ".git"]
        base = Path(dirpath)
        for name in filenames + [d for d in dirnames if (base / d).is_symlink()]:
            found.add((base / name).relative_to(root).as_posix())
    return found


@pytest.fixture
def source(tmp_path: Path) -> Path:
    root = tmp_path / "src"
    (root / ".git").mkdir(parents=True)
    _write(root, ".git/HEAD", "ref: refs/heads/main\n")
    _write(root, "README.md", "# hi\n")
    _write(root, "pkg/module.py", "print('hi')\n")
    _write(root, "pkg/sub/data.json", "{}")
    return root


@pytest.fixture
def mirror(tmp_path: Path) -> Path:
    return tmp_path / "src-github"


# ---------------------------------------------------------------------------
# ExcludeMatcher
# ---------------------------------------------------------------------------

class TestExcludeMatcher:

    def test_git_always_excluded(self):
        matcher = ExcludeMatcher([])
        assert matcher.is_excluded(".git", is_dir=True)
        assert matcher.is_excluded("sub/.git", is_dir=True)

    def test_default_patterns(self):
        matcher = ExcludeMatcher(DEFAULT_EXCLUDES)
        assert matcher.is_excluded("node_modules", is_dir=True)
        assert matcher.is_excluded("web/node_modules", is_dir=True)
        assert matcher.is_excluded("pkg/__pycache__", is_dir=True)
        assert matcher.is_excluded(".DS_Store")
        assert matcher.is_excluded("logs/build.log")
        assert not matcher.is_excluded("pkg/module.py")

    def test_directory_only_pattern(self):
        matcher = ExcludeMatcher(["build/"])
        assert matcher.is_excluded("build", is_dir=True)
        assert not matcher.is_excluded("build")

    def test_protected_paths_are_literal(self):
        matcher = ExcludeMatcher([], protected=["mirror", ".env"])
        assert matcher.is_excluded("mirror", is_dir=True)
        assert matcher.is_excluded("mirror/file.txt")
        assert matcher.is_excluded(".env")
        assert not matcher.is_excluded("mirrored.txt")

    def test_build_matcher_protects_nested_mirror_and_config(self, tmp_path):
        source = tmp_path / "src"
        matcher = build_matcher(source, source / "out" / "mirror", [], source / ".env")
        assert "out/mirror" in matcher.protected
        assert ".env" in matcher.protected


# ---------------------------------------------------------------------------
# reconcile_tree()
# ---------------------------------------------------------------------------

class TestReconcileTree:

    def test_first_sync_copies_everything(self, source, mirror):
        report = reconcile_tree(source, mirror, DEFAULT_EXCLUDES)

        assert _tree(mirror) == {"README.md", "pkg/module.py", "pkg/sub/data.json"}
        assert sorted(report.copied) == ["README.md", "pkg/module.py", "pkg/sub/data.json"]
        assert report.changed

    def test_source_metadata_never_copied(self, source, mirror):
        reconcile_tree(source, mirror)
        assert not (mirror / ".git").exists()

    def test_mirror_metadata_untouched(self, source, mirror):
        _write(mirror, ".git/HEAD", "ref: refs/heads/main\n")
        _write(mirror, ".git/config", "[core]\n")

        reconcile_tree(source, mirror, delete_missing=True)

        assert (mirror / ".git" / "config").read_text() == "[core]\n"

    def test_second_sync_is_unchanged(self, source, mirror):
        reconcile_tree(source, mirror)
        report = reconcile_tree(source, mirror)

        assert not report.changed
        assert report.unchanged == 3
        assert report.summary() == "0 copied, 0 updated, 0 deleted, 3 unchanged"

    def test_modified_file_is_updated(self, source, mirror):
        reconcile_tree(source, mirror)
        _write(source, "README.md", "# changed\n")

        report = reconcile_tree(source, mirror)

        assert report.updated == ["README.md"]
        assert (mirror / "README.md").read_text() == "# changed\n"

    def test_same_size_content_change_detected(self, source, mirror):
        reconcile_tree(source, mirror)
        _write(source, "README.md", "# ho\n")

        report = reconcile_tree(source, mirror)

        assert report.updated == ["README.md"]

    def test_excluded_files_skipped(self, source, mirror):
        _write(source, "node_modules/lib/index.js")
        _write(source, "pkg/__pycache__/module.cpython-312.pyc")
        _write(source, "debug.log")
        _write(source, ".DS_Store")

        reconcile_tree(source, mirror, DEFAULT_EXCLUDES)

        assert _tree(mirror) == {"README.md", "pkg/module.py", "pkg/sub/data.json"}

    def test_delete_removes_stale_files_and_dirs(self, source, mirror):
        reconcile_tree(source, mirror)
        shutil.rmtree(source / "pkg" / "sub")

        report = reconcile_tree(source, mirror, delete_missing=True)

        assert report.deleted == ["pkg/sub/data.json"]
        assert not (mirror / "pkg" / "sub").exists()
        assert (mirror / "pkg" / "module.py").exists()

    def test_no_delete_keeps_stale_files(self, source, mirror):
        reconcile_tree(source, mirror)
        (source / "README.md").unlink()

        report = reconcile_tree(source, mirror, delete_missing=False)

        assert report.deleted == []
        assert (mirror / "README.md").exists()

    def test_delete_spares_excluded_mirror_files(self, source, mirror):
        reconcile_tree(source, mirror, DEFAULT_EXCLUDES)
        _write(mirror, "node_modules/cache.js")
        _write(mirror, "local.log")

        report = reconcile_tree(source, mirror, DEFAULT_EXCLUDES, delete_missing=True)

        assert report.deleted == []
        assert (mirror / "node_modules" / "cache.js").exists()
        assert (mirror / "local.log").exists()

    def test_mirror_only_file_deleted(self, source, mirror):
        reconcile_tree(source, mirror)
        _write(mirror, "extra/stray.txt")

        report = reconcile_tree(source, mirror, delete_missing=True)

        assert report.deleted == ["extra/stray.txt"]
        assert not (mirror / "extra").exists()

    def test_empty_source_directory_mirrored(self, source, mirror):
        (source / "empty").mkdir()
        reconcile_tree(source, mirror)
        assert (mirror / "empty").is_dir()

    def test_config_file_never_copied(self, source, mirror):
        env = _write(source, ".env", "DEFAULT_GITHUB_TOKEN=secret\n")

        reconcile_tree(source, mirror, config_file=env)

        assert not (mirror / ".env").exists()

    def test_nested_mirror_not_copied_into_itself(self, source):
        nested = source / "mirror-out"

        reconcile_tree(source, nested)

        assert (nested / "README.md").exists()
        assert not (nested / "mirror-out").exists()

    def test_mirror_equal_to_source_rejected(self, source):
        with pytest.raises(ReconcileError):
            reconcile_tree(source, source)

    def test_mirror_containing_source_rejected(self, source):
        with pytest.raises(ReconcileError) as exc:
            reconcile_tree(source, source.parent)
        assert exc.value.remediation

    def test_file_replaced_by_directory(self, source, mirror):
        reconcile_tree(source, mirror)
        (source / "README.md").unlink()
        _write(source, "README.md/index.md", "moved")

        reconcile_tree(source, mirror)

        assert (mirror / "README.md" / "index.md").read_text() == "moved"

    def test_directory_replaced_by_file(self, source, mirror):
        reconcile_tree(source, mirror)
        shutil.rmtree(source / "pkg" / "sub")
        _write(source, "pkg/sub", "now a file")

        report = reconcile_tree(source, mirror)

        assert (mirror / "pkg" / "sub").read_text() == "now a file"
        assert "pkg/sub" in report.updated

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_symlinks_copied_as_links(self, source, mirror):
        os.symlink("README.md", source / "LINK.md")
        os.symlink("pkg", source / "pkg-link")

        reconcile_tree(source, mirror)

        assert os.readlink(mirror / "LINK.md") == "README.md"
        assert os.readlink(mirror / "pkg-link") == "pkg"

    def test_copy_failure_raises_reconcile_error(self, source, mirror):
        with mock.patch("g2g.mirror.reconcile.shutil.copy2", side_effect=PermissionError("denied")):
            with pytest.raises(ReconcileError) as exc:
                reconcile_tree(source, mirror)
        assert "denied" in exc.value.message
        assert "nothing was committed" in exc.value.remediation

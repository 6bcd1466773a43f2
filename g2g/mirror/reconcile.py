"""
Tree Reconciler — Make the mirror directory's files match the source tree.

Copies every non-excluded source file to the same relative path in the
mirror. With delete_missing, also removes mirror files that no longer
exist in the source (full reconciliation, like `rsync --delete`). Without
it, only adds and updates; stale files stay (legacy no-delete mode).

Exclude patterns use gitignore syntax (pathspec "gitwildmatch"). An
excluded directory is skipped entirely, on both sides: excluded files in
the mirror are never deleted. Always excluded:

- .git, so neither repository's metadata is touched
- the mirror directory, when it is nested inside the source
- the configuration file (it holds the token)

Any filesystem error aborts with ReconcileError, before the mirror is
committed, so a half-copied tree is never pushed.

## Usage

    from g2g.mirror.reconcile import reconcile_tree

    report = reconcile_tree(source_root, mirror_dir, ["*.log"], delete_missing=True)
    print(report.summary())
"""

from __future__ import annotations

import filecmp
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from pathspec import PathSpec

from ..errors import ReconcileError

logger = logging.getLogger(__name__)

METADATA_DIR = ".git"


@dataclass
class ReconcileReport:
    """What a reconciliation changed in the mirror."""

    copied: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    unchanged: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.copied or self.updated or self.deleted)

    def summary(self) -> str:
        return (
            f"{len(self.copied)} copied, {len(self.updated)} updated, "
            f"{len(self.deleted)} deleted, {self.unchanged} unchanged"
        )


class ExcludeMatcher:
    """Gitignore-style matcher over POSIX paths relative to a tree root."""

    def __init__(self, patterns: Iterable[str], protected: Iterable[str] = ()):
        self.patterns = [METADATA_DIR] + [p for p in patterns if p and p != METADATA_DIR]
        self.spec = PathSpec.from_lines("gitwildmatch", self.patterns)
        # Exact relative paths (no glob interpretation)
        self.protected = {p.strip("/") for p in protected if p}

    def is_excluded(self, rel_posix: str, is_dir: bool = False) -> bool:
        for path in self.protected:
            if rel_posix == path or rel_posix.startswith(path + "/"):
                return True
        if is_dir and not rel_posix.endswith("/"):
            rel_posix += "/"
        return self.spec.match_file(rel_posix)


def _is_within(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
        return True
    except ValueError:
        return False


def _raise(error: OSError) -> None:
    # os.walk swallows errors by default; a silently skipped source
    # directory would make its mirror copy look stale and get deleted.
    raise error


def _rel(rel_dir: Path, name: str) -> str:
    return (rel_dir / name).as_posix()


def _scan_source(root: Path, matcher: ExcludeMatcher) -> Tuple[Set[str], Set[str]]:
    """Relative paths of the files (incl. symlinks) and directories to mirror."""
    files: Set[str] = set()
    dirs: Set[str] = set()

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        base = Path(dirpath)
        rel_dir = base.relative_to(root)

        kept = []
        for name in dirnames:
            full = base / name
            rel = _rel(rel_dir, name)
            if full.is_symlink():
                if not matcher.is_excluded(rel):
                    files.add(rel)
                continue
            if matcher.is_excluded(rel, is_dir=True):
                continue
            dirs.add(rel)
            kept.append(name)
        dirnames[:] = kept

        for name in filenames:
            full = base / name
            rel = _rel(rel_dir, name)
            if matcher.is_excluded(rel):
                continue
            if not full.is_symlink() and not full.is_file():
                logger.debug(f"[reconcile] Skipping special file {rel}")
                continue
            files.add(rel)

    return files, dirs


def _clear(path: Path) -> None:
    """Remove whatever is at `path` (file, symlink or directory)."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _ensure_dir(directory: Path, mirror_root: Path) -> None:
    """mkdir -p under the mirror, replacing files/symlinks that are in the way."""
    current = mirror_root
    for part in directory.relative_to(mirror_root).parts:
        current = current / part
        if current.is_symlink() or (current.exists() and not current.is_dir()):
            current.unlink()
        current.mkdir(exist_ok=True)


def _same_file(src: Path, dst: Path) -> bool:
    if dst.is_symlink() or not dst.is_file():
        return False
    if src.stat().st_size != dst.stat().st_size:
        return False
    return filecmp.cmp(src, dst, shallow=False)


def _copy_entry(src: Path, dst: Path, rel: str, mirror_root: Path, report: ReconcileReport) -> None:
    existed = dst.exists() or dst.is_symlink()

    if src.is_symlink():
        target = os.readlink(src)
        if dst.is_symlink() and os.readlink(dst) == target:
            report.unchanged += 1
            return
        _clear(dst)
        _ensure_dir(dst.parent, mirror_root)
        os.symlink(target, dst)
    else:
        if _same_file(src, dst):
            report.unchanged += 1
            return
        if existed and (dst.is_symlink() or not dst.is_file()):
            _clear(dst)
        _ensure_dir(dst.parent, mirror_root)
        shutil.copy2(src, dst)

    (report.updated if existed else report.copied).append(rel)


def _delete_stale(
    mirror_root: Path,
    matcher: ExcludeMatcher,
    source_files: Set[str],
    source_dirs: Set[str],
    report: ReconcileReport,
) -> None:
    """Remove mirror entries with no source counterpart, then empty stale dirs."""
    stale_dirs: List[Path] = []

    for dirpath, dirnames, filenames in os.walk(mirror_root, onerror=_raise):
        base = Path(dirpath)
        rel_dir = base.relative_to(mirror_root)

        kept = []
        for name in dirnames:
            full = base / name
            rel = _rel(rel_dir, name)
            if full.is_symlink():
                if not matcher.is_excluded(rel) and rel not in source_files:
                    full.unlink()
                    report.deleted.append(rel)
                continue
            if matcher.is_excluded(rel, is_dir=True):
                continue
            kept.append(name)
            if rel not in source_dirs:
                stale_dirs.append(full)
        dirnames[:] = kept

        for name in filenames:
            rel = _rel(rel_dir, name)
            if matcher.is_excluded(rel) or rel in source_files:
                continue
            (base / name).unlink()
            report.deleted.append(rel)

    # Deepest first, so parents become empty before they are checked
    for directory in sorted(stale_dirs, key=lambda p: len(p.parts), reverse=True):
        if not any(directory.iterdir()):
            directory.rmdir()


def build_matcher(
    source_root: Path,
    mirror_dir: Path,
    patterns: Iterable[str],
    config_file: Optional[Path] = None,
) -> ExcludeMatcher:
    """Exclude matcher with the always-excluded paths added."""
    protected = []
    if _is_within(mirror_dir, source_root):
        protected.append(mirror_dir.relative_to(source_root).as_posix())
    if config_file is not None:
        config_file = config_file.resolve()
        if _is_within(config_file, source_root):
            protected.append(config_file.relative_to(source_root).as_posix())
    return ExcludeMatcher(patterns, protected=protected)


def reconcile_tree(
    source_root: Path,
    mirror_dir: Path,
    exclude_patterns: Iterable[str] = (),
    delete_missing: bool = True,
    config_file: Optional[Path] = None,
) -> ReconcileReport:
    """
    Reconcile `mirror_dir` against `source_root`.

    Args:
        source_root: Source repository root
        mirror_dir: Mirror working tree (created if absent)
        exclude_patterns: Gitignore-style patterns to leave out
        delete_missing: Remove mirror files that are gone from the source
        config_file: Configuration file to keep out of the mirror

    Returns:
        ReconcileReport

    Raises:
        ReconcileError: Invalid layout or any copy/delete failure
    """
    source_root = source_root.resolve()
    mirror_dir = mirror_dir.resolve()

    if mirror_dir == source_root or _is_within(source_root, mirror_dir):
        raise ReconcileError(
            f"Mirror directory {mirror_dir} must not be (or contain) the source tree",
            remediation="Point G2G_MIRROR_DIR / --mirror-dir at a separate directory",
        )

    matcher = build_matcher(source_root, mirror_dir, exclude_patterns, config_file)
    report = ReconcileReport()

    mode = "with deletion of removed files" if delete_missing else "additive, no deletions"
    logger.info(f"[reconcile] Syncing files to {mirror_dir} ({mode})...")

    try:
        mirror_dir.mkdir(parents=True, exist_ok=True)
        source_files, source_dirs = _scan_source(source_root, matcher)

        for rel in sorted(source_dirs):
            _ensure_dir(mirror_dir / rel, mirror_dir)
        for rel in sorted(source_files):
            _copy_entry(source_root / rel, mirror_dir / rel, rel, mirror_dir, report)

        if delete_missing:
            _delete_stale(mirror_dir, matcher, source_files, source_dirs, report)
    except OSError as e:
        logger.error(f"[reconcile] Failed: {e}")
        raise ReconcileError(
            f"Reconciling {mirror_dir} failed: {e}",
            remediation="Fix the file or permission problem above and re-run; nothing was committed to the mirror",
        )

    for rel in report.deleted:
        logger.debug(f"[reconcile] deleted {rel}")
    logger.info(f"[reconcile] ✓ Files synced: {report.summary()}")
    return report

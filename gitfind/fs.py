"""Filesystem walker producing candidate repository directories."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Iterable, Iterator, List, Set

from .logging import get_logger

logger = get_logger("fs")


def find_dirs(
    root: Path,
    target_name: str,
    *,
    follow: bool = False,
    ignore: Iterable[Path] = (),
) -> Iterator[Path]:
    """Yield directories named ``target_name`` beneath ``root``.

    The walk is depth-first over an explicit stack. Matched directories are
    not descended into. Paths in ``ignore`` are compared exactly, so only the
    listed directories (and therefore their subtrees) are skipped.

    Symbolic links are skipped unless ``follow`` is set. When following, each
    link target is pushed back onto the frontier; a second link to a target
    that was already followed is skipped so link cycles terminate.
    """
    ignored: Set[Path] = {Path(path) for path in ignore}
    followed: Set[str] = set()
    frontier: List[Path] = [Path(root)]

    while frontier:
        path = frontier.pop()
        if path in ignored:
            continue
        if not os.path.exists(path):
            continue

        try:
            meta = path.lstat()
        except OSError as exc:
            logger.error("Failed to read metadata for %s: %s", path, exc)
            continue

        if stat.S_ISLNK(meta.st_mode):
            if not follow:
                continue
            try:
                target = Path(os.path.normpath(path.parent / os.readlink(path)))
            except OSError as exc:
                logger.error("Failed to read link %s: %s", path, exc)
                continue
            canonical = os.path.realpath(target)
            if canonical in followed:
                logger.debug("Not following %s again, %s was already visited", path, canonical)
                continue
            followed.add(canonical)
            frontier.append(target)
            continue

        if not stat.S_ISDIR(meta.st_mode):
            continue

        if path.name == target_name:
            yield path
            continue

        try:
            with os.scandir(path) as entries:
                children = [Path(entry.path) for entry in entries]
        except OSError as exc:
            logger.error("Failed to read directory %s: %s", path, exc)
            continue
        frontier.extend(children)


def iter_candidates(
    roots: Iterable[Path],
    target_name: str = ".git",
    *,
    follow: bool = False,
    ignore: Iterable[Path] = (),
) -> Iterator[Path]:
    """Chain :func:`find_dirs` over several roots."""
    ignored = frozenset(Path(path) for path in ignore)
    for root in roots:
        yield from find_dirs(root, target_name, follow=follow, ignore=ignored)


__all__ = ["find_dirs", "iter_candidates"]

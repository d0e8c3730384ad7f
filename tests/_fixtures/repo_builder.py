"""Helpers for building directory trees and fake inspectors in tests."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional

from gitfind.git import InspectionError
from gitfind.models import Branch, FsLocation, Location, NetLocation, RepoFacts


class TreeBuilder:
    """Utility for laying out throwaway directory trees containing repositories."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "tree"
        self.root.mkdir()

    def repo(self, relative: str, *, marker: str = ".git") -> Path:
        """Create ``relative/<marker>`` and return the marker directory."""
        git_dir = self.root / relative / marker if relative else self.root / marker
        git_dir.mkdir(parents=True, exist_ok=True)
        (git_dir / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
        return git_dir

    def dir(self, relative: str) -> Path:
        path = self.root / relative
        path.mkdir(parents=True, exist_ok=True)
        return path

    def file(self, relative: str, content: str = "") -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def path(self, relative: str = "") -> Path:
        return self.root / relative if relative else self.root


def make_facts(remotes: Optional[Mapping[str, str]] = None, *, description: str | None = None) -> RepoFacts:
    return RepoFacts(
        description=description,
        remotes=dict(remotes or {}),
        branches={"main": Branch(roots=frozenset({"r00t"}), leaf="1eaf")},
    )


class FakeInspector:
    """In-memory inspector recording every call it receives."""

    def __init__(
        self,
        local_facts: Optional[Mapping[Path, Optional[RepoFacts]]] = None,
        remote_facts: Optional[Mapping[str, Optional[RepoFacts]]] = None,
        *,
        not_repos: tuple[Path, ...] = (),
    ) -> None:
        self.local_facts: Dict[Path, Optional[RepoFacts]] = dict(local_facts or {})
        self.remote_facts: Dict[str, Optional[RepoFacts]] = dict(remote_facts or {})
        self.not_repos = set(not_repos)
        self.probed: List[Path] = []
        self.inspected: List[Location] = []

    async def is_repo(self, directory: Path) -> bool:
        self.probed.append(directory)
        return directory not in self.not_repos

    async def inspect(self, location: Location) -> RepoFacts:
        self.inspected.append(location)
        if isinstance(location, FsLocation):
            facts = self.local_facts.get(location.directory, make_facts())
        elif isinstance(location, NetLocation):
            facts = self.remote_facts.get(location.address, make_facts())
        else:  # pragma: no cover - closed set of locations
            raise TypeError(location)
        if facts is None:
            raise InspectionError(f"cannot inspect {location}")
        return facts

    @property
    def remote_calls(self) -> List[str]:
        return [loc.address for loc in self.inspected if isinstance(loc, NetLocation)]


class MemorySink:
    """View sink keeping the latest view per (host, location)."""

    def __init__(self, fail_for: tuple[Location, ...] = ()) -> None:
        self.rows: Dict[tuple[str, Location], object] = {}
        self.writes = 0
        self.fail_for = set(fail_for)

    def upsert(self, view):  # type: ignore[no-untyped-def]
        from gitfind.stores import StoreError

        if view.location in self.fail_for:
            raise StoreError(f"refusing to store {view.location}")
        self.writes += 1
        self.rows[(view.host, view.location)] = view
        return self.writes


__all__ = ["FakeInspector", "MemorySink", "TreeBuilder", "make_facts"]

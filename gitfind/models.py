"""Core data models shared across gitfind components."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union


@dataclass(frozen=True)
class FsLocation:
    """A git directory on the local filesystem."""

    directory: Path

    def __str__(self) -> str:
        return str(self.directory)


@dataclass(frozen=True)
class NetLocation:
    """A repository reachable through a remote address."""

    address: str

    def __str__(self) -> str:
        return self.address


Location = Union[FsLocation, NetLocation]


@dataclass(frozen=True)
class Branch:
    """A branch leaf commit together with its parentless ancestors."""

    roots: FrozenSet[str]
    leaf: str


@dataclass(frozen=True)
class RepoFacts:
    """Metadata extracted from a repository."""

    description: Optional[str] = None
    remotes: Mapping[str, str] = field(default_factory=dict)
    branches: Mapping[str, Branch] = field(default_factory=dict)


@dataclass(frozen=True)
class View:
    """Outcome of one inspection attempt; ``facts`` is ``None`` on failure."""

    host: str
    location: Location
    facts: Optional[RepoFacts] = None

    @property
    def ok(self) -> bool:
        return self.facts is not None


def location_to_dict(location: Location) -> Dict[str, Dict[str, str]]:
    if isinstance(location, FsLocation):
        return {"Fs": {"dir": str(location.directory)}}
    if isinstance(location, NetLocation):
        return {"Net": {"url": location.address}}
    raise TypeError(f"Unsupported location: {location!r}")


def location_from_dict(payload: Mapping[str, Any]) -> Location:
    if not isinstance(payload, Mapping) or len(payload) != 1:
        raise ValueError(f"Malformed location payload: {payload!r}")
    ((tag, body),) = payload.items()
    if not isinstance(body, Mapping):
        raise ValueError(f"Malformed location payload: {payload!r}")
    if tag == "Fs" and isinstance(body.get("dir"), str):
        return FsLocation(Path(body["dir"]))
    if tag == "Net" and isinstance(body.get("url"), str):
        return NetLocation(body["url"])
    raise ValueError(f"Unknown location variant: {tag!r}")


def facts_to_dict(facts: Optional[RepoFacts]) -> Optional[Dict[str, Any]]:
    if facts is None:
        return None
    return {
        "description": facts.description,
        "remotes": dict(sorted(facts.remotes.items())),
        "branches": {
            name: {"leaf": branch.leaf, "roots": sorted(branch.roots)}
            for name, branch in sorted(facts.branches.items())
        },
    }


def facts_from_dict(payload: Optional[Mapping[str, Any]]) -> Optional[RepoFacts]:
    if payload is None:
        return None
    if not isinstance(payload, Mapping):
        raise ValueError(f"Malformed facts payload: {payload!r}")
    description = payload.get("description")
    remotes = payload.get("remotes") or {}
    branches_payload = payload.get("branches") or {}
    if not isinstance(remotes, Mapping) or not isinstance(branches_payload, Mapping):
        raise ValueError("Malformed facts payload: remotes and branches must be mappings")
    branches: Dict[str, Branch] = {}
    for name, entry in branches_payload.items():
        if not isinstance(entry, Mapping) or not isinstance(entry.get("leaf"), str):
            raise ValueError(f"Malformed branch payload for {name!r}")
        branches[str(name)] = Branch(
            roots=frozenset(str(root) for root in entry.get("roots") or ()),
            leaf=entry["leaf"],
        )
    return RepoFacts(
        description=description if isinstance(description, str) else None,
        remotes={str(name): str(address) for name, address in remotes.items()},
        branches=branches,
    )


__all__ = [
    "Branch",
    "FsLocation",
    "Location",
    "NetLocation",
    "RepoFacts",
    "View",
    "facts_from_dict",
    "facts_to_dict",
    "location_from_dict",
    "location_to_dict",
]

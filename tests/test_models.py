"""Tests for the location, facts and view models."""

from __future__ import annotations

from pathlib import Path

import pytest

from gitfind.models import (
    Branch,
    FsLocation,
    NetLocation,
    RepoFacts,
    View,
    facts_from_dict,
    facts_to_dict,
    location_from_dict,
    location_to_dict,
)


def test_locations_compare_structurally() -> None:
    assert FsLocation(Path("/a/.git")) == FsLocation(Path("/a/.git"))
    assert FsLocation(Path("/a")) != NetLocation("/a")
    assert len({NetLocation("u"), NetLocation("u"), FsLocation(Path("u"))}) == 2


def test_location_encoding_uses_tagged_variants() -> None:
    assert location_to_dict(FsLocation(Path("/x/.git"))) == {"Fs": {"dir": "/x/.git"}}
    assert location_to_dict(NetLocation("git@h:r.git")) == {"Net": {"url": "git@h:r.git"}}
    assert location_from_dict({"Net": {"url": "u"}}) == NetLocation("u")


@pytest.mark.parametrize(
    "payload",
    [{"Svn": {"url": "u"}}, {"Fs": {"dir": 3}}, {}, {"Fs": "x"}, {"Fs": {}, "Net": {}}],
)
def test_location_decoding_rejects_unknown_shapes(payload) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(ValueError):
        location_from_dict(payload)


def test_location_encoding_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        location_to_dict("not a location")  # type: ignore[arg-type]


def test_facts_encoding_is_deterministic() -> None:
    facts = RepoFacts(
        description=None,
        remotes={"z": "u2", "a": "u1"},
        branches={"main": Branch(roots=frozenset({"c", "a", "b"}), leaf="l")},
    )

    encoded = facts_to_dict(facts)

    assert encoded == {
        "description": None,
        "remotes": {"a": "u1", "z": "u2"},
        "branches": {"main": {"leaf": "l", "roots": ["a", "b", "c"]}},
    }
    assert facts_from_dict(encoded) == facts
    assert facts_to_dict(None) is None
    assert facts_from_dict(None) is None


def test_view_ok_reflects_facts() -> None:
    assert View("h", NetLocation("u"), RepoFacts()).ok is True
    assert View("h", NetLocation("u")).ok is False

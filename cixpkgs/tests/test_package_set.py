"""Tests for package set composition and resolution."""

import pytest

from cix.errors import CyclicSetError, NotFoundError, SetConflictError
from cixpkgs.artifact import artifact
from cixpkgs.package_set import (
    Pinned,
    PackageSetRegistry,
    SetRef,
    include,
    parse_set_expr,
    resolve_set,
    resolve_sets,
)


@pytest.fixture
def registry():
    return PackageSetRegistry({
        "core": ["base", "shell"],
        "full": [include("core"), "net"],
        "A": ["base", "shell"],
        "B": ["shell", "net"],
    })


def names(artifacts):
    return [a.name for a in artifacts]


def test_resolve_plain(registry, small_catalog):
    assert names(resolve_set("core", registry, small_catalog)) == ["base", "shell"]


def test_include_expands_in_place(registry, small_catalog):
    """An included set expands at its position."""
    assert names(resolve_set("full", registry, small_catalog)) == ["base", "shell", "net"]


def test_concat_drops_duplicates(registry, small_catalog):
    assert names(resolve_set("A ++ B", registry, small_catalog)) == ["base", "shell", "net"]


def test_resolve_sets_matches_expression(registry, small_catalog):
    assert resolve_sets(["A", "B"], registry, small_catalog) == resolve_set("A++B", registry, small_catalog)


def test_conflicting_duplicate(small_catalog):
    """Same name, different fingerprint is a conflict."""
    registry = PackageSetRegistry({
        "A": ["base", "shell"],
        "B": [Pinned("shell", artifact("shell", "9.9")), "net"],
    })
    with pytest.raises(SetConflictError, match="'shell'"):
        resolve_set("A ++ B", registry, small_catalog)


def test_pinned_same_fingerprint_is_fine(small_catalog):
    registry = PackageSetRegistry({
        "A": ["shell"],
        "B": [Pinned("shell", small_catalog.shell)],
    })
    assert names(resolve_set("A ++ B", registry, small_catalog)) == ["shell"]


def test_sets_are_references(registry, small_catalog):
    """Resolving against a different catalog picks up its artifacts."""
    newer = small_catalog.replace({"net": artifact("net", "9.0")})
    assert resolve_set("full", registry, newer)[-1].version == "9.0"


def test_unknown_set(registry, small_catalog):
    with pytest.raises(NotFoundError, match="no package set 'nope'"):
        resolve_set("nope", registry, small_catalog)


def test_unknown_artifact(small_catalog):
    registry = PackageSetRegistry({"bad": ["base", "missing"]})
    with pytest.raises(NotFoundError, match="missing"):
        resolve_set("bad", registry, small_catalog)


def test_cycle(small_catalog):
    """Mutually including sets are reported as a cycle."""
    registry = PackageSetRegistry({
        "a": ["base", include("b")],
        "b": [include("a")],
    })
    with pytest.raises(CyclicSetError) as exc:
        resolve_set("a", registry, small_catalog)
    assert exc.value.cycle == ["a", "b", "a"]


def test_self_cycle():
    registry = PackageSetRegistry({"a": [include("a")]})
    with pytest.raises(CyclicSetError):
        registry.expand("a")


def test_diamond_is_not_a_cycle(small_catalog):
    registry = PackageSetRegistry({
        "core": ["base"],
        "x": [include("core"), "shell"],
        "y": [include("core"), "net"],
        "top": [include("x"), include("y")],
    })
    assert names(resolve_set("top", registry, small_catalog)) == ["base", "shell", "net"]


def test_empty_set(small_catalog):
    registry = PackageSetRegistry({"empty": []})
    assert resolve_set("empty", registry, small_catalog) == ()


def test_bad_entry_type():
    with pytest.raises(TypeError):
        PackageSetRegistry({"bad": [42]})


def test_define_returns_new_registry(registry):
    extended = registry.define("extra", [include("full")])
    assert "extra" in extended
    assert "extra" not in registry
    assert extended.names() == ["core", "full", "A", "B", "extra"]
    assert extended.entries("extra") == (SetRef("full"),)


def test_parse_set_expr():
    assert parse_set_expr("a ++ b++c") == ["a", "b", "c"]
    with pytest.raises(NotFoundError):
        parse_set_expr("a ++ ")

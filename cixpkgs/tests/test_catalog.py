"""Tests for the immutable artifact catalog."""

import pytest

from cix.errors import NotFoundError
from cixpkgs.artifact import artifact
from cixpkgs.catalog import ArtifactCatalog


def test_resolve(small_catalog):
    assert small_catalog.resolve("net").name == "net"
    assert small_catalog["net"] is small_catalog.resolve("net")


def test_attribute_access(small_catalog):
    """Entries are reachable as attributes."""
    assert small_catalog.shell is small_catalog.resolve("shell")


def test_not_found(small_catalog):
    with pytest.raises(NotFoundError, match="no artifact 'missing'"):
        small_catalog.resolve("missing")


def test_attribute_not_found(small_catalog):
    with pytest.raises(AttributeError):
        small_catalog.missing


def test_get(small_catalog):
    assert small_catalog.get("missing") is None
    assert small_catalog.get("base") is small_catalog.base


def test_immutable(small_catalog):
    """Catalogs reject assignment."""
    with pytest.raises(AttributeError):
        small_catalog.snapshot = "other"
    with pytest.raises(AttributeError):
        small_catalog.base = artifact("base", "2")


def test_entries_cannot_be_mutated_through_source_dict():
    source = {"a": artifact("a")}
    cat = ArtifactCatalog("s", source)
    source["b"] = artifact("b")
    assert "b" not in cat


def test_names_and_iteration(small_catalog):
    assert small_catalog.all_names() == {"libc", "base", "shell", "net"}
    assert list(small_catalog) == ["base", "libc", "net", "shell"]
    assert len(small_catalog) == 4


def test_replace_returns_new_catalog(small_catalog):
    """replace leaves the original catalog untouched."""
    new_net = artifact("net", "9.0")
    updated = small_catalog.replace({"net": new_net}, "net-update")
    assert updated.net is new_net
    assert small_catalog.net.version == "8.0"
    assert updated.base is small_catalog.base
    assert updated.snapshot == small_catalog.snapshot


def test_provenance(small_catalog):
    updated = small_catalog.replace({"net": artifact("net", "9.0")}, "net-update")
    assert updated.provenance("net") == "net-update"
    assert updated.provenance("base") is None
    assert small_catalog.provenance("net") is None
    with pytest.raises(NotFoundError):
        updated.provenance("missing")

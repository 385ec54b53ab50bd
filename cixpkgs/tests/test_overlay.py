"""Tests for rewrite rules and overlay chains."""

import logging

import pytest

from cix.errors import MissingTargetError, PassthruViolationError, RuleConflictError
from cixpkgs.artifact import artifact
from cixpkgs.overlay import OverlayChain, apply, describe_chain, merge_rules, rewrite_rule


@rewrite_rule("net-9", targets=["net"])
def net_9(prev):
    """net 9.0."""
    return {"net": prev.net.override(version="9.0")}


@rewrite_rule("base-2", targets=["base"])
def base_2(prev):
    return {"base": prev.base.override(version="2.0")}


def test_decorator_builds_rule():
    assert net_9.name == "net-9"
    assert net_9.targets == ("net",)
    assert net_9.description == "net 9.0."
    assert net_9.produces == {"net"}


def test_apply_replaces_target(small_catalog):
    """A rule's target is replaced in the next catalog."""
    effective = apply(small_catalog, [net_9])
    assert effective.net.version == "9.0"
    assert small_catalog.net.version == "8.0"


def test_untouched_names_identical(small_catalog):
    effective = apply(small_catalog, [net_9, base_2])
    for name in small_catalog.all_names() - {"net", "base"}:
        assert effective.resolve(name) is small_catalog.resolve(name)


def test_empty_chain_is_identity(small_catalog):
    effective = OverlayChain().apply(small_catalog)
    for name in small_catalog:
        assert effective.resolve(name) is small_catalog.resolve(name)


def test_chained_visibility(small_catalog):
    """A later rule sees what an earlier rule produced."""
    seen = []

    @rewrite_rule("shell-on-new-net", targets=["shell"])
    def shell_on_new_net(prev):
        seen.append(prev.net.version)
        return {"shell": prev.shell.override(runtime_deps=[prev.net])}

    effective = apply(small_catalog, [net_9, shell_on_new_net])
    assert seen == ["9.0"]
    assert effective.shell.runtime_deps == (effective.net,)


def test_provenance_recorded(small_catalog):
    effective = apply(small_catalog, [net_9])
    assert effective.provenance("net") == "net-9"
    assert effective.provenance("base") is None


def test_missing_target(small_catalog):
    """Overriding a name the catalog lacks fails."""
    @rewrite_rule("ghost", targets=["ghost"])
    def ghost(prev):
        return {"ghost": artifact("ghost")}

    with pytest.raises(MissingTargetError, match="ghost"):
        apply(small_catalog, [ghost])


def test_adds_new_name(small_catalog):
    @rewrite_rule("add-dns", adds=["dns"])
    def add_dns(prev):
        return {"dns": artifact("dns", "1", runtime_deps=[prev.libc])}

    effective = apply(small_catalog, [add_dns])
    assert effective.dns.name == "dns"
    assert "dns" not in small_catalog


def test_adds_existing_name_conflicts(small_catalog):
    @rewrite_rule("add-net", adds=["net"])
    def add_net(prev):
        return {"net": artifact("net", "1")}

    with pytest.raises(RuleConflictError, match="already exists"):
        apply(small_catalog, [add_net])


def test_undeclared_output(small_catalog):
    """A rule may only return the names it declares."""
    @rewrite_rule("sneaky", targets=["net"])
    def sneaky(prev):
        return {"net": prev.net, "base": artifact("base", "3")}

    with pytest.raises(RuleConflictError, match="undeclared"):
        apply(small_catalog, [sneaky])


def test_declared_output_missing(small_catalog):
    @rewrite_rule("lazy", targets=["net", "base"])
    def lazy(prev):
        return {"net": prev.net}

    with pytest.raises(RuleConflictError, match="did not produce"):
        apply(small_catalog, [lazy])


def test_non_artifact_result(small_catalog):
    @rewrite_rule("broken", targets=["net"])
    def broken(prev):
        return {"net": "/nix/store/not-an-artifact"}

    with pytest.raises(RuleConflictError, match="expected Artifact"):
        apply(small_catalog, [broken])


def test_duplicate_rule_name(small_catalog):
    with pytest.raises(RuleConflictError, match="twice"):
        apply(small_catalog, [net_9, net_9])


def test_double_override_warns(small_catalog, caplog):
    """Overriding a name twice logs a warning; the later rule wins."""
    @rewrite_rule("net-10", targets=["net"])
    def net_10(prev):
        return {"net": prev.net.override(version="10.0")}

    with caplog.at_level(logging.WARNING, logger="cixpkgs.overlay"):
        effective = apply(small_catalog, [net_9, net_10])
    assert effective.net.version == "10.0"
    assert effective.provenance("net") == "net-10"
    assert any("replaced again" in r.getMessage() for r in caplog.records)


class TestPassthru:

    def test_dropping_passthru_is_a_violation(self, small_catalog):
        @rewrite_rule("drop", targets=["shell"])
        def drop(prev):
            return {"shell": prev.shell.override(passthru={})}

        with pytest.raises(PassthruViolationError, match="shellPath"):
            apply(small_catalog, [drop])

    def test_changing_passthru_is_a_violation(self, small_catalog):
        @rewrite_rule("change", targets=["shell"])
        def change(prev):
            return {"shell": prev.shell.override(passthru={"shellPath": "/bin/zsh"})}

        with pytest.raises(RuleConflictError):
            apply(small_catalog, [change])

    def test_declared_override_allowed(self, small_catalog):
        """Declared passthru keys may change."""
        @rewrite_rule("change", targets=["shell"], passthru_overrides=["shellPath"])
        def change(prev):
            return {"shell": prev.shell.override(passthru={"shellPath": "/bin/zsh"})}

        effective = apply(small_catalog, [change])
        assert effective.shell.passthru["shellPath"] == "/bin/zsh"

    def test_extra_passthru_allowed(self, small_catalog):
        @rewrite_rule("extend", targets=["shell"])
        def extend(prev):
            return {"shell": prev.shell.override(passthru={**prev.shell.passthru, "extra": 1})}

        assert apply(small_catalog, [extend]).shell.passthru["extra"] == 1


class TestMergeRules:

    def test_union(self, small_catalog):
        group = merge_rules("group", [net_9, base_2])
        assert set(group.targets) == {"net", "base"}
        effective = apply(small_catalog, [group])
        assert effective.net.version == "9.0"
        assert effective.base.version == "2.0"
        assert effective.provenance("net") == "group"

    def test_members_see_same_catalog(self, small_catalog):
        """Merged rules all read the catalog before the merge."""
        seen = []

        @rewrite_rule("reader", targets=["shell"])
        def reader(prev):
            seen.append(prev.net.version)
            return {"shell": prev.shell}

        apply(small_catalog, [merge_rules("group", [net_9, reader])])
        assert seen == ["8.0"]

    def test_conflicting_members(self, small_catalog):
        @rewrite_rule("net-10", targets=["net"])
        def net_10(prev):
            return {"net": prev.net.override(version="10.0")}

        group = merge_rules("group", [net_9, net_10])
        with pytest.raises(RuleConflictError, match="different fingerprints"):
            apply(small_catalog, [group])

    def test_agreeing_members(self, small_catalog):
        @rewrite_rule("net-9-again", targets=["net"])
        def net_9_again(prev):
            return {"net": prev.net.override(version="9.0")}

        effective = apply(small_catalog, [merge_rules("group", [net_9, net_9_again])])
        assert effective.net.version == "9.0"

    def test_duplicate_member(self):
        with pytest.raises(RuleConflictError):
            merge_rules("group", [net_9, net_9])


class TestOverlayChain:

    def test_then_appends(self):
        chain = OverlayChain([net_9]).then(base_2)
        assert [r.name for r in chain] == ["net-9", "base-2"]
        assert len(chain) == 2

    def test_then_does_not_mutate(self):
        chain = OverlayChain([net_9])
        chain.then(base_2)
        assert len(chain) == 1

    def test_describe_chain(self, small_catalog):
        effective = OverlayChain([net_9]).apply(small_catalog)
        lines = describe_chain(small_catalog, effective)
        assert lines == [f"net: {small_catalog.net.out} -> {effective.net.out} [net-9]"]

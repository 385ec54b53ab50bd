"""Overlay chains: ordered artifact substitution over a catalog.

The Nix overlay ``final: prev: { busybox = ...; }`` becomes a
RewriteRule whose ``rebuild`` receives the catalog-so-far (``prev``)
and returns the artifacts it replaces:

    @rewrite_rule("busybox-patched", targets=["busybox"])
    def busybox_patched(prev):
        return {"busybox": prev.busybox.override(version="1.37.0")}

    effective = apply(base, [busybox_patched, pyright_patched])

Rules run strictly in list order and each sees its predecessor's output,
so a rule can rebuild a tool against a runtime patched one step earlier.
Unlike Nix there is no ``final``: rules are pure functions of ``prev``,
which keeps the chain free of fixed-point evaluation and reproducible.

``merge_rules`` is the ``a // b // c`` form: every member sees the same
``prev`` and their results are unioned. There is no order between the
members, so two of them producing different artifacts for one name is
a conflict rather than "last wins".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping

from cix.errors import MissingTargetError, PassthruViolationError, RuleConflictError
from cixpkgs.artifact import Artifact
from cixpkgs.catalog import ArtifactCatalog

logger = logging.getLogger(__name__)

RebuildFn = Callable[[ArtifactCatalog], Mapping[str, Artifact]]


@dataclass(frozen=True)
class RewriteRule:
    """A named transformation replacing (or adding) catalog entries.

    Attributes:
        name:               Unique within a chain; recorded as provenance.
        targets:            Existing names this rule replaces.
        rebuild:            fn(prev) -> {name: Artifact}.
        adds:               New names this rule introduces.
        passthru_overrides: Passthru keys the rule may drop or change.
        description:        Why the rule exists (CVE, license, ...).
    """

    name: str
    targets: tuple[str, ...]
    rebuild: RebuildFn = field(repr=False)
    adds: tuple[str, ...] = ()
    passthru_overrides: frozenset[str] = frozenset()
    description: str = ""

    @property
    def produces(self) -> frozenset[str]:
        return frozenset(self.targets) | frozenset(self.adds)


def rewrite_rule(
    name: str,
    targets: Iterable[str] = (),
    *,
    adds: Iterable[str] = (),
    passthru_overrides: Iterable[str] = (),
    description: str = "",
):
    """Decorator turning fn(prev) -> {name: Artifact} into a RewriteRule.

    The docstring of the decorated function is used as the description
    when none is given.
    """
    def decorator(fn: RebuildFn) -> RewriteRule:
        return RewriteRule(
            name=name,
            targets=tuple(targets),
            rebuild=fn,
            adds=tuple(adds),
            passthru_overrides=frozenset(passthru_overrides),
            description=description or (fn.__doc__ or "").strip().split("\n")[0],
        )
    return decorator


def merge_rules(name: str, rules: Iterable[RewriteRule], description: str = "") -> RewriteRule:
    """Combine rules that all see the same catalog, like ``a // b // c``.

    Members producing the same name must agree on its fingerprint.
    """
    members = tuple(rules)
    seen: set[str] = set()
    for r in members:
        if r.name in seen:
            raise RuleConflictError(f"rule group {name!r} lists {r.name!r} twice")
        seen.add(r.name)

    targets: list[str] = []
    adds: list[str] = []
    for r in members:
        targets.extend(t for t in r.targets if t not in targets)
        adds.extend(a for a in r.adds if a not in adds)

    def rebuild(prev: ArtifactCatalog) -> dict[str, Artifact]:
        merged: dict[str, Artifact] = {}
        owner: dict[str, str] = {}
        for r in members:
            for key, new in _run_rule(r, prev).items():
                if key in merged and merged[key] != new:
                    raise RuleConflictError(
                        f"rules {owner[key]!r} and {r.name!r} in group {name!r} "
                        f"both produce {key!r} with different fingerprints "
                        f"({merged[key].fingerprint} vs {new.fingerprint})"
                    )
                if key in merged:
                    logger.debug("%s: %r produced identically by %r and %r", name, key, owner[key], r.name)
                    continue
                merged[key] = new
                owner[key] = r.name
        return merged

    return RewriteRule(
        name=name,
        targets=tuple(t for t in targets if t not in adds),
        rebuild=rebuild,
        adds=tuple(adds),
        passthru_overrides=frozenset().union(*(r.passthru_overrides for r in members)),
        description=description or ", ".join(r.name for r in members),
    )


def _check_passthru(rule: RewriteRule, key: str, old: Artifact, new: Artifact) -> None:
    for attr, value in old.passthru.items():
        if attr in rule.passthru_overrides:
            continue
        if attr not in new.passthru:
            raise PassthruViolationError(
                f"rule {rule.name!r} drops passthru attribute {attr!r} of {key!r}"
            )
        if new.passthru[attr] != value:
            raise PassthruViolationError(
                f"rule {rule.name!r} changes passthru attribute {attr!r} of {key!r} "
                f"without declaring it in passthru_overrides"
            )


def _run_rule(rule: RewriteRule, prev: ArtifactCatalog) -> dict[str, Artifact]:
    """Validate preconditions, run the rule, and validate its result."""
    for target in rule.targets:
        if target not in prev:
            raise MissingTargetError(
                f"rule {rule.name!r} targets {target!r}, which is not in the catalog"
            )
    for added in rule.adds:
        if added in prev:
            raise RuleConflictError(
                f"rule {rule.name!r} adds {added!r}, which already exists; "
                f"declare it as a target to replace it"
            )

    result = dict(rule.rebuild(prev))

    undeclared = set(result) - rule.produces
    if undeclared:
        raise RuleConflictError(
            f"rule {rule.name!r} produced undeclared names: {sorted(undeclared)}"
        )
    missing = rule.produces - set(result)
    if missing:
        raise RuleConflictError(
            f"rule {rule.name!r} did not produce declared names: {sorted(missing)}"
        )

    for key, new in result.items():
        if not isinstance(new, Artifact):
            raise RuleConflictError(
                f"rule {rule.name!r} returned {type(new).__name__} for {key!r}, expected Artifact"
            )
        if key in rule.targets:
            _check_passthru(rule, key, prev.resolve(key), new)
    return result


def apply(base: ArtifactCatalog, rules: Iterable[RewriteRule]) -> ArtifactCatalog:
    """Apply rules front to back, returning the effective catalog.

    Untouched names keep the very Artifact objects of ``base``. A name
    replaced by more than one rule is logged as a warning; the later
    rule wins.
    """
    catalog = base
    rule_names: set[str] = set()
    replaced_by: dict[str, str] = {}

    for rule in rules:
        if rule.name in rule_names:
            raise RuleConflictError(f"rule {rule.name!r} appears twice in the chain")
        rule_names.add(rule.name)

        result = _run_rule(rule, catalog)

        for key, new in result.items():
            if key in replaced_by:
                logger.warning(
                    "%r replaced by rule %r was replaced again by rule %r",
                    key, replaced_by[key], rule.name,
                )
            replaced_by[key] = rule.name
            if key in catalog:
                logger.debug("%s: %s -> %s", rule.name, catalog.resolve(key).out, new.out)
            else:
                logger.debug("%s: + %s", rule.name, new.out)

        catalog = catalog.replace(result, rule.name)
        logger.info("applied rule %r (%d artifact(s))", rule.name, len(result))

    return catalog


class OverlayChain:
    """An ordered, immutable list of rewrite rules.

    Front-to-back precedence: a later rule sees, and may replace, what
    an earlier rule produced.
    """

    def __init__(self, rules: Iterable[RewriteRule] = ()):
        self.rules: tuple[RewriteRule, ...] = tuple(rules)

    def then(self, *rules: RewriteRule) -> OverlayChain:
        return OverlayChain(self.rules + rules)

    def apply(self, base: ArtifactCatalog) -> ArtifactCatalog:
        return apply(base, self.rules)

    def __iter__(self):
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)


def describe_chain(base: ArtifactCatalog, effective: ArtifactCatalog) -> list[str]:
    """One line per substituted name: ``name: old -> new [rule]``."""
    lines = []
    for name in effective:
        rule = effective.provenance(name)
        if rule is None:
            continue
        new = effective.resolve(name)
        old = base.get(name)
        before = old.out if old is not None else "(new)"
        lines.append(f"{name}: {before} -> {new.out} [{rule}]")
    return lines

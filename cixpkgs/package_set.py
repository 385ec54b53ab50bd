"""Named, composable package sets.

A package set is an ordered list of references. Entries are:

    "jq"                      an artifact name, resolved against a catalog
    include("base")           another set, expanded in place
    Pinned("jq", some_jq)     a name bound to one specific artifact

Sets are references, not copies: resolving the same registry against a
different catalog (e.g. after an overlay) yields the overlaid artifacts.

    sets = PackageSetRegistry({
        "core": ["base", "shell"],
        "full": [include("core"), "net"],
    })
    resolve_set("full", sets, pkgs)        # [base, shell, net]
    resolve_set("core ++ full", sets, pkgs)

Duplicates are dropped by name, keeping the first position. A duplicate
that resolves to a different artifact is an error: silently picking one
would make the image depend on declaration order.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence, Union

from cix.errors import CyclicSetError, NotFoundError, SetConflictError
from cixpkgs.artifact import Artifact
from cixpkgs.catalog import ArtifactCatalog


@dataclass(frozen=True)
class SetRef:
    name: str


@dataclass(frozen=True)
class Pinned:
    name: str
    artifact: Artifact


Entry = Union[str, SetRef, Pinned]


def include(name: str) -> SetRef:
    return SetRef(name)


class PackageSetRegistry:
    """Immutable mapping from set name to its ordered entries."""

    def __init__(self, sets: Mapping[str, Sequence[Entry]] | None = None):
        checked = {}
        for name, entries in (sets or {}).items():
            checked[name] = tuple(_check_entry(name, e) for e in entries)
        self._sets = MappingProxyType(checked)

    def define(self, name: str, entries: Sequence[Entry]) -> PackageSetRegistry:
        """New registry with ``name`` added or redefined."""
        return PackageSetRegistry({**self._sets, name: entries})

    def names(self) -> list[str]:
        return list(self._sets)

    def __contains__(self, name: object) -> bool:
        return name in self._sets

    def entries(self, name: str) -> tuple[Entry, ...]:
        try:
            return self._sets[name]
        except KeyError:
            raise NotFoundError(f"no package set {name!r}") from None

    def expand(self, name: str) -> list[str | Pinned]:
        """Flatten ``name`` into artifact references, set references expanded.

        Raises CyclicSetError if the set (transitively) includes itself.
        """
        out: list[str | Pinned] = []
        self._expand(name, [], out)
        return out

    def _expand(self, name: str, stack: list[str], out: list) -> None:
        if name in stack:
            raise CyclicSetError(stack[stack.index(name):] + [name])
        entries = self.entries(name)
        stack.append(name)
        for entry in entries:
            if isinstance(entry, SetRef):
                self._expand(entry.name, stack, out)
            else:
                out.append(entry)
        stack.pop()


def _check_entry(set_name: str, entry) -> Entry:
    if isinstance(entry, (str, SetRef, Pinned)):
        return entry
    raise TypeError(
        f"package set {set_name!r}: entries must be str, SetRef or Pinned, "
        f"got {type(entry).__name__}"
    )


def parse_set_expr(expr: str) -> list[str]:
    """Split ``"a ++ b ++ c"`` into set names."""
    names = [part.strip() for part in expr.split("++")]
    if not all(names):
        raise NotFoundError(f"malformed package set expression {expr!r}")
    return names


def resolve_entries(
    refs: Iterable[str | Pinned], catalog: ArtifactCatalog, origin: str = "",
) -> tuple[Artifact, ...]:
    """Resolve flattened references, deduplicating by reference name."""
    by_name: dict[str, Artifact] = {}
    ordered: list[Artifact] = []
    for ref in refs:
        if isinstance(ref, Pinned):
            key, resolved = ref.name, ref.artifact
        else:
            key, resolved = ref, catalog.resolve(ref)
        prior = by_name.get(key)
        if prior is None:
            by_name[key] = resolved
            ordered.append(resolved)
        elif prior != resolved:
            where = f" in {origin!r}" if origin else ""
            raise SetConflictError(
                f"{key!r}{where} resolves to both {prior.out} and {resolved.out}; "
                f"reorder or prune the sets so only one remains"
            )
    return tuple(ordered)


def resolve_set(set_name: str, registry: PackageSetRegistry, catalog: ArtifactCatalog) -> tuple[Artifact, ...]:
    """Resolve a set name (or ``"a ++ b"`` expression) to ordered Artifacts."""
    refs: list[str | Pinned] = []
    for name in parse_set_expr(set_name):
        refs.extend(registry.expand(name))
    return resolve_entries(refs, catalog, origin=set_name)


def resolve_sets(names: Iterable[str], registry: PackageSetRegistry, catalog: ArtifactCatalog) -> tuple[Artifact, ...]:
    """Resolve the concatenation of several sets."""
    return resolve_set(" ++ ".join(names), registry, catalog)

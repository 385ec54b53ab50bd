"""Immutable artifact catalog.

A catalog maps attribute names (``nodejs_22``, ``nodePackages.eslint``)
to Artifacts, all pinned to one upstream snapshot. It is a value: no
method mutates it, and ``replace()`` returns a new catalog that shares
every untouched Artifact object with the old one.

    pkgs = ArtifactCatalog("nixpkgs-2025-01-01", {"jq": jq, "curl": curl})
    pkgs.jq                 # attribute access, like pkgs.jq in Nix
    pkgs.resolve("jq")      # same, and works for any name
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterator, Mapping

from cix.errors import NotFoundError
from cixpkgs.artifact import Artifact


class ArtifactCatalog:
    """Snapshot-pinned mapping from name to Artifact, with provenance."""

    __slots__ = ("snapshot", "_entries", "_provenance")

    def __init__(
        self,
        snapshot: str,
        entries: Mapping[str, Artifact],
        provenance: Mapping[str, str] | None = None,
    ):
        object.__setattr__(self, "snapshot", snapshot)
        object.__setattr__(self, "_entries", MappingProxyType(dict(entries)))
        object.__setattr__(self, "_provenance", MappingProxyType(dict(provenance or {})))

    def __setattr__(self, name, value):
        raise AttributeError("ArtifactCatalog is immutable")

    def __getattr__(self, name: str) -> Artifact:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self.resolve(name)
        except NotFoundError as e:
            raise AttributeError(str(e)) from None

    def resolve(self, name: str) -> Artifact:
        try:
            return self._entries[name]
        except KeyError:
            raise NotFoundError(
                f"no artifact {name!r} in catalog {self.snapshot!r}"
            ) from None

    __getitem__ = resolve

    def get(self, name: str, default: Artifact | None = None) -> Artifact | None:
        return self._entries.get(name, default)

    def all_names(self) -> frozenset[str]:
        return frozenset(self._entries)

    def items(self):
        return self._entries.items()

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ArtifactCatalog({self.snapshot!r}, {len(self)} artifacts)"

    def provenance(self, name: str) -> str | None:
        """Name of the rewrite rule that last produced ``name``, if any."""
        self.resolve(name)
        return self._provenance.get(name)

    def replace(self, replacements: Mapping[str, Artifact], rule_name: str | None = None) -> ArtifactCatalog:
        """New catalog with ``replacements`` laid over this one."""
        entries = {**self._entries, **replacements}
        provenance = dict(self._provenance)
        if rule_name is not None:
            for name in replacements:
                provenance[name] = rule_name
        return ArtifactCatalog(self.snapshot, entries, provenance)

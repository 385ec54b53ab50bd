"""Artifacts: named, fingerprinted build outputs.

    artifact("jq", "1.7.1", srcs=["sha256-..."], runtime_deps=[oniguruma])

Like stdenv.mkDerivation, ``artifact()`` takes readable arguments,
builds a Recipe from them and computes the output store path. The
fingerprint covers the recipe and, through the input store paths, every
transitive dependency. Meta and passthru ride along without affecting
the fingerprint, just as in Nix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from cix.recipe import Recipe, hash_recipe, make_recipe
from cix.store_path import make_output_path, split_store_path

DEFAULT_BUILDER = "builtin:prebuilt"


@dataclass(frozen=True)
class Meta:
    license: str = ""
    homepage: str = ""
    description: str = ""


@dataclass(frozen=True, eq=False)
class Artifact:
    """A resolved artifact with its computed output path.

    Equality and hashing go by output path: equal paths are
    substitutable anywhere. ``str(a)`` is the output path.
    """

    name: str
    version: str
    recipe: Recipe
    out: str
    meta: Meta
    passthru: Mapping[str, Any]
    deps: tuple[Artifact, ...]
    runtime_deps: tuple[Artifact, ...]
    _args: dict[str, Any] = field(repr=False)  # original artifact() kwargs, for override()

    @property
    def fingerprint(self) -> str:
        return split_store_path(self.out)[0]

    @property
    def store_name(self) -> str:
        return split_store_path(self.out)[1]

    def __str__(self) -> str:
        return self.out

    def __eq__(self, other) -> bool:
        if not isinstance(other, Artifact):
            return NotImplemented
        return self.out == other.out

    def __hash__(self) -> int:
        return hash(self.out)

    def override(self, **kw) -> Artifact:
        """Re-derive with changed arguments. Like pkg.overrideAttrs in Nix.

        Passthru and meta are carried forward unless given explicitly.
        """
        return artifact(**{**self._args, **kw})


def artifact(
    name: str,
    version: str = "",
    *,
    builder: str = DEFAULT_BUILDER,
    system: str = "x86_64-linux",
    args: list[str] | None = None,
    env: dict[str, str] | None = None,
    srcs: list[str] | None = None,
    deps: list[Artifact] | None = None,
    runtime_deps: list[Artifact] | None = None,
    meta: Meta | None = None,
    passthru: Mapping[str, Any] | None = None,
) -> Artifact:
    """Create an Artifact with computed fingerprint and output path.

    Args:
        name:         Package name (pname).
        version:      Version string; joined to the name in the store path.
        builder:      Builder the external build system runs.
        system:       Build platform.
        args:         Builder arguments.
        env:          Extra builder environment.
        srcs:         Pinned source identifiers (SRI hashes, store paths).
        deps:         Build-time dependencies.
        runtime_deps: Dependencies that must ship alongside this artifact.
        meta:         License, homepage, description.
        passthru:     Opaque attributes downstream consumers may read.
    """
    deps = list(deps or [])
    runtime_deps = list(runtime_deps or [])
    meta = meta or Meta()
    passthru = dict(passthru or {})

    orig_args = dict(
        name=name, version=version, builder=builder, system=system,
        args=list(args or []), env=dict(env or {}), srcs=list(srcs or []),
        deps=deps, runtime_deps=runtime_deps, meta=meta, passthru=passthru,
    )

    store_name = f"{name}-{version}" if version else name

    full_env = dict(env or {})
    full_env.setdefault("name", store_name)
    full_env.setdefault("pname", name)
    full_env.setdefault("version", version)
    full_env.setdefault("builder", builder)
    full_env.setdefault("system", system)

    recipe = make_recipe(
        builder=builder,
        args=args,
        env=full_env,
        srcs=srcs,
        inputs=[a.out for a in deps + runtime_deps],
        platform=system,
    )
    out = make_output_path(hash_recipe(recipe), store_name)

    return Artifact(
        name=name,
        version=version,
        recipe=recipe,
        out=out,
        meta=meta,
        passthru=MappingProxyType(passthru),
        deps=tuple(deps),
        runtime_deps=tuple(runtime_deps),
        _args=orig_args,
    )


def runtime_closure(artifacts) -> list[Artifact]:
    """Artifacts plus their runtime deps, deps first, in input order.

    Depth-first post-order walk, deduplicated by fingerprint. The closure
    of a prefix of ``artifacts`` is a prefix of the full closure.
    """
    seen: set[str] = set()
    result: list[Artifact] = []

    def visit(a: Artifact) -> None:
        if a.out in seen:
            return
        seen.add(a.out)
        for dep in a.runtime_deps:
            visit(dep)
        result.append(a)

    for a in artifacts:
        visit(a)
    return result

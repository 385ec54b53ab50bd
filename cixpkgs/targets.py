"""Example images, and the glue from a target to an ImageSpec.

Projects declare their own targets the same way; these mirror the
images the infrastructure repository builds and tests.
"""

from __future__ import annotations

from dataclasses import dataclass

from cix.errors import NotFoundError
from cixpkgs.catalog import ArtifactCatalog
from cixpkgs.image import ImageOptions, ImageSpec, Role, assemble
from cixpkgs.overlays import default_chain
from cixpkgs.package_set import PackageSetRegistry, resolve_sets
from cixpkgs.sets import default_registry
from cixpkgs.upstream import UPSTREAM_SNAPSHOT, make_catalog

REGISTRY = "ghcr.io/cix-images"


@dataclass(frozen=True)
class ImageTarget:
    name: str
    role: Role
    sets: tuple[str, ...]
    test_type: str
    options: ImageOptions


def _target(name: str, role: Role, sets: list[str], test_type: str, **options) -> ImageTarget:
    return ImageTarget(name, role, tuple(sets), test_type,
                       ImageOptions(name=f"{REGISTRY}/{name}", **options))


TARGETS = (
    # For developing this repository: nix tooling plus shell script tooling.
    _target("infra-devcontainer", Role.DEVELOPMENT,
            ["devcontainer", "bashDev"], "base"),
    _target("example-node-devcontainer", Role.DEVELOPMENT,
            ["devcontainer", "node", "nodeDev"], "node"),
    _target("example-node-runtime", Role.RUNTIME,
            ["base", "node"], "node"),
    _target("example-python-devcontainer", Role.DEVELOPMENT,
            ["devcontainer", "python", "pythonDev"], "python"),
    _target("example-python-runtime", Role.RUNTIME,
            ["base", "python"], "python"),
)


def find_target(name: str, targets=TARGETS) -> ImageTarget:
    for t in targets:
        if t.name == name:
            return t
    raise NotFoundError(
        f"no image target {name!r} (known: {', '.join(t.name for t in targets)})"
    )


def effective_catalog(snapshot: str = UPSTREAM_SNAPSHOT) -> ArtifactCatalog:
    """Upstream snapshot with the default overlay chain applied."""
    return default_chain().apply(make_catalog(snapshot))


def build_target(
    target: ImageTarget,
    catalog: ArtifactCatalog,
    registry: PackageSetRegistry | None = None,
) -> ImageSpec:
    artifacts = resolve_sets(target.sets, registry or default_registry(), catalog)
    return assemble(artifacts, target.role, target.options, snapshot=catalog.snapshot)

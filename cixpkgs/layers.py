"""Layer bin-packing and cross-image layer sharing.

Packing is order-stable and count-bounded. With a budget of N layers,
one is reserved for the scaffold; the first N-2 artifacts each get a
layer of their own and everything after that shares the last artifact
layer:

    budget 5, artifacts a b c d e f  ->  [a] [b] [c] [d e f] + scaffold

A layer's digest depends only on the store paths in it, in order. Two
images pinned to the same snapshot whose artifact sequences start the
same way therefore start with byte-identical layers, and a registry or
runtime stores those layers once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from cix.archive import layer_digest
from cix.errors import LayerSharingError
from cixpkgs.artifact import Artifact


@dataclass(frozen=True)
class Layer:
    artifacts: tuple[Artifact, ...]
    digest: str

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(a.out for a in self.artifacts)


def make_layer(artifacts: Sequence[Artifact]) -> Layer:
    artifacts = tuple(artifacts)
    return Layer(artifacts, layer_digest(a.out for a in artifacts))


def pack_layers(artifacts: Sequence[Artifact], max_layers: int) -> tuple[Layer, ...]:
    """Partition ``artifacts`` into at most ``max_layers - 1`` layers.

    The remaining slot belongs to the scaffold layer.
    """
    if max_layers < 2:
        raise ValueError(f"max_layers must be at least 2, got {max_layers}")
    budget = max_layers - 1
    if len(artifacts) <= budget:
        return tuple(make_layer([a]) for a in artifacts)
    singles = budget - 1
    layers = [make_layer([a]) for a in artifacts[:singles]]
    layers.append(make_layer(artifacts[singles:]))
    return tuple(layers)


def shared_layers(a, b) -> tuple[Layer, ...]:
    """Longest common prefix of two images' artifact layers."""
    common = []
    for la, lb in zip(a.layers, b.layers):
        if la.digest != lb.digest:
            break
        common.append(la)
    return tuple(common)


def check_layer_sharing(a, b) -> tuple[Layer, ...]:
    """Verify two images split their common artifacts into the same layers.

    The artifacts both images start with must be cut at the same layer
    boundaries. A layer may only differ from its counterpart where both
    run past the common artifacts. Returns the shared layer prefix.
    """
    if a.snapshot != b.snapshot:
        raise LayerSharingError(
            f"{a.name!r} and {b.name!r} are pinned to different snapshots "
            f"({a.snapshot!r} vs {b.snapshot!r})"
        )
    if a.max_layers != b.max_layers:
        raise LayerSharingError(
            f"{a.name!r} and {b.name!r} have different layer budgets "
            f"({a.max_layers} vs {b.max_layers})"
        )

    common = 0
    for x, y in zip(a.artifacts, b.artifacts):
        if x != y:
            break
        common += 1

    start = 0
    for i, (la, lb) in enumerate(zip(a.layers, b.layers)):
        if start >= common:
            break
        end_a = start + len(la.artifacts)
        end_b = start + len(lb.artifacts)
        if end_a != end_b and min(end_a, end_b) <= common:
            raise LayerSharingError(
                f"layer {i} of {a.name!r} and {b.name!r} splits their common artifacts "
                f"differently ({', '.join(la.paths)} vs {', '.join(lb.paths)})"
            )
        if end_a <= common and la.digest != lb.digest:
            raise LayerSharingError(
                f"layer {i} of {a.name!r} and {b.name!r} holds the same artifacts "
                f"but digests differ ({la.digest} vs {lb.digest})"
            )
        start = end_a
    return shared_layers(a, b)

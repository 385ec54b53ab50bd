"""Hand an assembled image's artifacts to the external builder.

The builder is whatever turns a recipe into a store path: a Nix daemon,
a remote cache, a CI job. Here it is just a callable:

    def build(artifact: Artifact) -> str: ...

returning the output path it produced. Builds are deterministic, so a
BuildError is surfaced exactly as raised and never retried, and a
builder that returns a different path than the fingerprint predicts is
itself an error.
"""

import logging
from typing import Callable

from cix.errors import BuildError
from cixpkgs.artifact import Artifact
from cixpkgs.image import ImageSpec

logger = logging.getLogger(__name__)

Builder = Callable[[Artifact], str]


def assume_built(artifact: Artifact) -> str:
    """Builder for dry runs: trusts that every output already exists."""
    return artifact.out


def realize(spec: ImageSpec, build: Builder = assume_built) -> dict[str, str]:
    """Build every artifact of ``spec`` in layer order. Returns {out: ref}."""
    refs: dict[str, str] = {}
    for artifact in spec.artifacts:
        ref = build(artifact)
        if ref != artifact.out:
            raise BuildError(
                f"builder returned {ref!r} for {artifact.name!r}, expected {artifact.out!r}"
            )
        logger.debug("realized %s", ref)
        refs[artifact.out] = ref
    logger.info("realized %d artifact(s) for %s", len(refs), spec.ref)
    return refs

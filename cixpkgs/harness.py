"""Image validation harness.

Builds each selected target and checks the invariants its role
promises. Images are independent: one failing (or failing to build)
is recorded and the rest still run.

    results = run(TARGETS, "python", catalog)
    failed = [r for r in results if not r.passed]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from cix.errors import CixError
from cixpkgs.catalog import ArtifactCatalog
from cixpkgs.image import ImageSpec, Role
from cixpkgs.package_set import PackageSetRegistry
from cixpkgs.scaffold import FILE, GROUP_PATH, PASSWD_PATH, SHADOW_PATH, SUDOERS_DIR
from cixpkgs.targets import ImageTarget, build_target

logger = logging.getLogger(__name__)


@dataclass
class Result:
    target: str
    passed: bool
    problems: list[str] = field(default_factory=list)
    spec: ImageSpec | None = None


def select(targets: Iterable[ImageTarget], pattern: str | None = None) -> list[ImageTarget]:
    """Targets whose name, test type or role contains ``pattern``."""
    targets = list(targets)
    if not pattern:
        return targets
    return [
        t for t in targets
        if pattern in t.name or pattern in t.test_type or pattern in t.role.value
    ]


def _passwd_records(spec: ImageSpec) -> list[list[str]]:
    return [line.split(":") for line in spec.scaffold[PASSWD_PATH].content.splitlines() if line]


def validate(spec: ImageSpec) -> list[str]:
    """Return a list of invariant violations; empty means the image is sound."""
    problems = []
    scaffold = spec.scaffold

    for path in (PASSWD_PATH, GROUP_PATH, SHADOW_PATH):
        entry = scaffold.get(path)
        if entry is None:
            problems.append(f"{path} missing")
        elif entry.kind != FILE:
            problems.append(f"{path} must be a regular file, not a {entry.kind}")
    if problems:
        return problems

    if scaffold[SHADOW_PATH].mode != 0o640:
        problems.append(f"{SHADOW_PATH} has mode {scaffold[SHADOW_PATH].mode:04o}, expected 0640")

    config = spec.config.as_dict()
    if not config.get("WorkingDir"):
        problems.append("image has no working directory")

    # User may be given by name or uid, optionally with a group.
    configured = str(config.get("User", "")).partition(":")[0]
    record = next(
        (r for r in _passwd_records(spec) if configured in (r[0], r[2])), None,
    )
    if record is None or record[2] == "0":
        problems.append(f"runtime user {configured!r} is root or has no passwd record")
        return problems
    user, _, uid, gid, _, home, _ = record

    grant = f"{SUDOERS_DIR}/{user}"
    grants = [e.path for e in scaffold if e.path.startswith(SUDOERS_DIR + "/")]
    if spec.role is Role.DEVELOPMENT:
        if grant not in scaffold:
            problems.append(f"development image has no privilege grant {grant}")
        elif scaffold[grant].mode != 0o440 or scaffold[grant].kind != FILE:
            problems.append(f"{grant} must be a regular file with mode 0440")
    elif grants:
        problems.append(f"runtime image carries privilege grants: {', '.join(grants)}")

    owned = scaffold.under(home)
    if not owned:
        problems.append(f"home directory {home} missing from scaffold")
    for e in owned:
        if (str(e.uid), str(e.gid)) != (uid, gid):
            problems.append(f"{e.path} owned by {e.uid}:{e.gid}, expected {uid}:{gid}")

    if len(spec.layers) + 1 > spec.max_layers:
        problems.append(f"{len(spec.layers) + 1} layers exceed the budget of {spec.max_layers}")
    return problems


def run(
    targets: Iterable[ImageTarget],
    pattern: str | None,
    catalog: ArtifactCatalog,
    registry: PackageSetRegistry | None = None,
) -> list[Result]:
    results = []
    for target in select(targets, pattern):
        try:
            spec = build_target(target, catalog, registry)
        except CixError as e:
            logger.error("%s: build failed: %s", target.name, e)
            results.append(Result(target.name, False, [f"build failed: {e}"]))
            continue
        problems = validate(spec)
        for p in problems:
            logger.error("%s: %s", target.name, p)
        if not problems:
            logger.info("%s: PASS", target.name)
        results.append(Result(target.name, not problems, problems, spec))
    return results

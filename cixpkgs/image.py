"""Image assembly: artifacts + role + options -> ImageSpec.

Python equivalent of the flake's mkDevContainer / mkRuntime pair, as one
pure function. The role only picks defaults and scaffold content; the
packing algorithm is shared.

    spec = assemble(
        resolve_set("base ++ python", sets, pkgs),
        Role.RUNTIME,
        ImageOptions(name="example-python-runtime"),
    )
    spec.layers          # artifact layers, bottom first
    spec.scaffold        # /etc/passwd & co, as content strings
    spec.config.as_dict()

Option precedence, lowest first: role defaults, ImageOptions fields,
``extra_config`` (merged last into the runtime config, caller wins). The
merged config must still name the image account as ``User`` and a valid
``WorkingDir``.
"""

from __future__ import annotations

import copy
import logging
import posixpath
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from cix.errors import InvalidRoleConfigError
from cix.store_path import make_text_store_path
from cixpkgs.artifact import Artifact, runtime_closure
from cixpkgs.layers import Layer, pack_layers
from cixpkgs.scaffold import (
    Account,
    Scaffold,
    development_scaffold,
    find_artifact,
    runtime_scaffold,
    shell_path,
    trust_bundle,
)

logger = logging.getLogger(__name__)

USER_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")

# Trees the scaffold writes into; a runtime workdir cannot be at or below one.
RESERVED_ROOTS = ("/etc", "/root", "/tmp", "/usr", "/nix")


class Role(str, Enum):
    DEVELOPMENT = "development"
    RUNTIME = "runtime"


@dataclass(frozen=True)
class RoleProfile:
    role: Role
    default_user: str
    default_workdir: str | None
    max_layers: int
    uid: int = 1000
    gid: int = 1000


PROFILES = {
    Role.DEVELOPMENT: RoleProfile(Role.DEVELOPMENT, "vscode", None, 100),
    Role.RUNTIME: RoleProfile(Role.RUNTIME, "app", "/app", 50),
}

DEVELOPMENT_WORKDIR = "/workspace"


@dataclass(frozen=True)
class ImageOptions:
    """Caller-facing configuration record.

    ``user``, ``workdir`` and ``max_layers`` default per role when None.
    ``workdir`` is only accepted for the runtime role.
    """

    name: str
    tag: str = "latest"
    user: str | None = None
    workdir: str | None = None
    extra_config: Mapping[str, Any] = field(default_factory=dict)
    max_layers: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "extra_config", _frozen_copy(self.extra_config))


def _frozen_copy(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(copy.deepcopy(dict(mapping)))


@dataclass(frozen=True)
class RuntimeConfig:
    user: str
    working_dir: str
    env: tuple[str, ...]
    cmd: tuple[str, ...] = ()
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "extra", _frozen_copy(self.extra))

    def as_dict(self) -> dict[str, Any]:
        """OCI-style config block; ``extra`` keys win on conflict."""
        config: dict[str, Any] = {
            "User": self.user,
            "WorkingDir": self.working_dir,
            "Env": list(self.env),
        }
        if self.cmd:
            config["Cmd"] = list(self.cmd)
        config.update(copy.deepcopy(dict(self.extra)))
        return config


@dataclass(frozen=True)
class ImageSpec:
    name: str
    tag: str
    role: Role
    snapshot: str
    layers: tuple[Layer, ...]
    scaffold: Scaffold
    scaffold_path: str
    config: RuntimeConfig
    max_layers: int

    @property
    def ref(self) -> str:
        return f"{self.name}:{self.tag}"

    @property
    def artifacts(self) -> tuple[Artifact, ...]:
        return tuple(a for layer in self.layers for a in layer.artifacts)

    @property
    def layer_digests(self) -> tuple[str, ...]:
        return tuple(layer.digest for layer in self.layers) + (self.scaffold.digest,)


def _check_workdir(image: str, workdir: Any) -> str:
    """Normalised absolute workdir outside the trees the scaffold writes."""
    if not isinstance(workdir, str) or not workdir.startswith("/"):
        raise InvalidRoleConfigError(f"{image}: workdir must be an absolute path, got {workdir!r}")
    normal = "/" + posixpath.normpath(workdir).lstrip("/")
    if normal == "/" or any(normal == r or normal.startswith(r + "/") for r in RESERVED_ROOTS):
        raise InvalidRoleConfigError(f"{image}: workdir {workdir!r} is a system directory")
    return normal


def _validate(role: Role, options: ImageOptions, profile: RoleProfile) -> tuple[str, str, int]:
    if not options.name:
        raise InvalidRoleConfigError("image name must not be empty")
    if not options.tag:
        raise InvalidRoleConfigError(f"{options.name}: tag must not be empty")

    user = options.user if options.user is not None else profile.default_user
    if user == "root":
        raise InvalidRoleConfigError(f"{options.name}: {role.value} images must not run as root")
    if not USER_RE.match(user):
        raise InvalidRoleConfigError(f"{options.name}: invalid user name {user!r}")

    if role is Role.DEVELOPMENT:
        if options.workdir is not None:
            raise InvalidRoleConfigError(
                f"{options.name}: workdir is a runtime option; development images use {DEVELOPMENT_WORKDIR}"
            )
        workdir = DEVELOPMENT_WORKDIR
    else:
        workdir = options.workdir if options.workdir is not None else profile.default_workdir
        workdir = _check_workdir(options.name, workdir)

    max_layers = options.max_layers if options.max_layers is not None else profile.max_layers
    if max_layers < 2:
        raise InvalidRoleConfigError(f"{options.name}: max_layers must be at least 2, got {max_layers}")
    return user, workdir, max_layers


def _check_effective(image: str, config: Mapping[str, Any], account: Account) -> None:
    """The merged config must still run as the scaffold account, in a valid workdir.

    ``User`` may name the account or its uid, optionally with ``:group``.
    """
    name, _, group = str(config.get("User", "")).partition(":")
    if name not in (account.user, str(account.uid)) or group not in ("", account.user, str(account.gid)):
        raise InvalidRoleConfigError(
            f"{image}: User {config.get('User')!r} is not the image account {account.user!r}"
        )
    _check_workdir(image, config.get("WorkingDir"))


def _library_path(artifacts: Sequence[Artifact]) -> str | None:
    libs = [find_artifact(artifacts, n) for n in ("glibc", "gcc-lib")]
    dirs = [f"{a.out}/lib" for a in libs if a is not None]
    return ":".join(dirs) if dirs else None


def _environment(role: Role, account: Account, artifacts: Sequence[Artifact]) -> tuple[str, ...]:
    env = [f"HOME={account.home}", f"USER={account.user}"]
    if role is Role.DEVELOPMENT:
        env.append(
            f"PATH={account.home}/.nix-profile/bin:/nix/var/nix/profiles/default/bin:/usr/bin:/bin"
        )
        env.append("NIX_PATH=nixpkgs=channel:nixpkgs-unstable")
    certs = trust_bundle(artifacts)
    if certs:
        env.append(f"SSL_CERT_FILE={certs}")
    ld_path = _library_path(artifacts)
    if ld_path:
        env.append(f"LD_LIBRARY_PATH={ld_path}")
    return tuple(env)


def assemble(
    artifacts: Sequence[Artifact],
    role: Role | str,
    options: ImageOptions,
    snapshot: str = "",
) -> ImageSpec:
    """Assemble an image description. Pure: computes, never writes.

    Args:
        artifacts: Resolved artifacts, in layer order.
        role:      Role.DEVELOPMENT or Role.RUNTIME (or their string values).
        options:   Caller configuration.
        snapshot:  Upstream snapshot tag the artifacts are pinned to.

    Raises:
        InvalidRoleConfigError: if the options conflict with the role.
    """
    try:
        role = Role(role)
    except ValueError:
        raise InvalidRoleConfigError(f"unknown role {role!r}") from None
    profile = PROFILES[role]
    user, workdir, max_layers = _validate(role, options, profile)

    closure = runtime_closure(artifacts)
    shell = shell_path(closure)
    if role is Role.DEVELOPMENT:
        account = Account(user, profile.uid, profile.gid, f"/home/{user}", shell)
    else:
        account = Account(user, profile.uid, profile.gid, workdir, shell)

    env = _environment(role, account, closure)
    if role is Role.DEVELOPMENT:
        scaffold = development_scaffold(closure, account, env)
        cmd: tuple[str, ...] = (shell,)
    else:
        scaffold = runtime_scaffold(closure, account, env)
        cmd = ()

    layers = pack_layers(closure, max_layers)
    config = RuntimeConfig(
        user=user, working_dir=workdir, env=env, cmd=cmd,
        extra=options.extra_config,
    )
    _check_effective(options.name, config.as_dict(), account)
    scaffold_path = make_text_store_path(
        f"{options.name.rsplit('/', 1)[-1]}-customisation-layer",
        scaffold.digest.encode(),
        [a.out for a in closure],
    )

    logger.info(
        "assembled %s:%s (%s): %d artifact(s) in %d layer(s)",
        options.name, options.tag, role.value, len(closure), len(layers) + 1,
    )
    for i, layer in enumerate(layers):
        logger.debug("layer %d %s: %s", i, layer.digest, " ".join(layer.paths))

    return ImageSpec(
        name=options.name,
        tag=options.tag,
        role=role,
        snapshot=snapshot,
        layers=layers,
        scaffold=scaffold,
        scaffold_path=scaffold_path,
        config=config,
        max_layers=max_layers,
    )

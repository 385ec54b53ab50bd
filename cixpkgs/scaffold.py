"""Filesystem scaffold synthesis.

The scaffold is the small set of files an image needs beyond its
artifacts: identity databases, privilege grants, shell bootstrap and
tool configuration. Everything here is computed as content strings with
explicit modes and ownership; nothing is written to disk and nothing
security-sensitive is a symlink (some consumers refuse to trust a
symlinked /etc/passwd or sudoers file).

Well-known paths stay fixed so FHS-minded tools can always find them.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Sequence

from cix.archive import scaffold_digest
from cixpkgs.artifact import Artifact

PASSWD_PATH = "/etc/passwd"
GROUP_PATH = "/etc/group"
SHADOW_PATH = "/etc/shadow"
SUDOERS_DIR = "/etc/sudoers.d"
SHELL_BOOTSTRAP_PATH = "/etc/profile.d/cix-env.sh"
OS_RELEASE_PATH = "/etc/os-release"
NIX_CONF_PATH = "/etc/nix/nix.conf"
DIRENVRC_PATH = "/etc/direnv/direnvrc"
TRUST_BUNDLE_SUFFIX = "etc/ssl/certs/ca-bundle.crt"

FILE = "file"
DIRECTORY = "directory"
SYMLINK = "symlink"

NIX_CONF = """\
experimental-features = nix-command flakes
accept-flake-config = true
"""

OS_RELEASE = """\
ID=nixos
NAME="NixOS"
"""

STARSHIP_TOML = """\
# Minimal devcontainer prompt
format = "$directory$git_branch$git_status$nix_shell$character"

[directory]
truncation_length = 3
truncate_to_repo = true

[git_branch]
format = "[$branch]($style) "
style = "bold purple"

[git_status]
format = '([$all_status$ahead_behind]($style) )'
style = "bold red"

[nix_shell]
format = '[$symbol$state]($style) '
symbol = "❄️ "
style = "bold blue"

[character]
success_symbol = "[❯](bold green)"
error_symbol = "[❯](bold red)"
"""


@dataclass(frozen=True)
class FileEntry:
    path: str
    kind: str
    mode: int
    uid: int = 0
    gid: int = 0
    content: str = ""
    target: str = ""


@dataclass(frozen=True)
class Account:
    user: str
    uid: int
    gid: int
    home: str
    shell: str


class Scaffold:
    """Immutable mapping from absolute path to FileEntry."""

    def __init__(self, entries: Iterable[FileEntry]):
        self._entries = MappingProxyType({e.path: e for e in sorted(entries, key=lambda e: e.path)})
        self.digest = scaffold_digest(self._entries.values())

    def __getitem__(self, path: str) -> FileEntry:
        return self._entries[path]

    def get(self, path: str) -> FileEntry | None:
        return self._entries.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[FileEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        return isinstance(other, Scaffold) and self.digest == other.digest

    def __hash__(self) -> int:
        return hash(self.digest)

    def paths(self) -> list[str]:
        return list(self._entries)

    def under(self, root: str) -> list[FileEntry]:
        """Entries at or below ``root``."""
        prefix = root.rstrip("/") + "/"
        return [e for p, e in self._entries.items() if p == root or p.startswith(prefix)]


class _Builder:
    def __init__(self):
        self._entries: dict[str, FileEntry] = {}

    def _parents(self, path: str) -> None:
        parts = path.strip("/").split("/")[:-1]
        for i in range(1, len(parts) + 1):
            parent = "/" + "/".join(parts[:i])
            if parent not in self._entries:
                self._entries[parent] = FileEntry(parent, DIRECTORY, 0o755)

    def directory(self, path: str, mode: int = 0o755, owner: Account | None = None) -> None:
        self._parents(path)
        uid, gid = (owner.uid, owner.gid) if owner else (0, 0)
        self._entries[path] = FileEntry(path, DIRECTORY, mode, uid, gid)

    def file(self, path: str, content: str, mode: int = 0o644, owner: Account | None = None) -> None:
        self._parents(path)
        uid, gid = (owner.uid, owner.gid) if owner else (0, 0)
        self._entries[path] = FileEntry(path, FILE, mode, uid, gid, content=content)

    def symlink(self, path: str, target: str) -> None:
        self._parents(path)
        self._entries[path] = FileEntry(path, SYMLINK, 0o777, target=target)

    def build(self) -> Scaffold:
        return Scaffold(self._entries.values())


def find_artifact(artifacts: Sequence[Artifact], name: str) -> Artifact | None:
    for a in artifacts:
        if a.name == name:
            return a
    return None


def shell_path(artifacts: Sequence[Artifact]) -> str:
    """Login shell: the first artifact exposing ``passthru.shellPath``."""
    for a in artifacts:
        rel = a.passthru.get("shellPath")
        if rel:
            return f"{a.out}{rel}"
    return "/bin/sh"


def trust_bundle(artifacts: Sequence[Artifact]) -> str | None:
    cacert = find_artifact(artifacts, "nss-cacert")
    return f"{cacert.out}/{TRUST_BUNDLE_SUFFIX}" if cacert else None


def passwd(root_shell: str, account: Account) -> str:
    return (
        f"root:x:0:0:root:/root:{root_shell}\n"
        f"{account.user}:x:{account.uid}:{account.gid}:{account.user}:{account.home}:{account.shell}\n"
    )


def group(account: Account, wheel: bool) -> str:
    lines = ["root:x:0:"]
    if wheel:
        lines.append(f"wheel:x:10:{account.user}")
    lines.append(f"{account.user}:x:{account.gid}:")
    return "\n".join(lines) + "\n"


def shadow(account: Account) -> str:
    return f"root:!:1::::::\n{account.user}:!:1::::::\n"


def sudoers(account: Account) -> str:
    return f"{account.user} ALL=(ALL) NOPASSWD:ALL\n"


def env_bootstrap(env: Sequence[str]) -> str:
    """/etc/profile.d script exporting the image environment to login shells."""
    lines = ["# Generated by cix; sourced by login shells."]
    for item in env:
        key, _, value = item.partition("=")
        lines.append(f"export {key}={shlex.quote(value)}")
    return "\n".join(lines) + "\n"


def _common(b: _Builder, artifacts: Sequence[Artifact], account: Account, env: Sequence[str], wheel: bool) -> None:
    b.directory("/etc")
    b.directory("/root", 0o700)
    b.directory("/tmp", 0o1777)
    b.directory("/usr/bin")
    coreutils = find_artifact(artifacts, "coreutils")
    if coreutils is not None:
        b.symlink("/usr/bin/env", f"{coreutils.out}/bin/env")

    b.file(PASSWD_PATH, passwd(account.shell, account))
    b.file(GROUP_PATH, group(account, wheel))
    b.file(SHADOW_PATH, shadow(account), 0o640)
    b.file(SHELL_BOOTSTRAP_PATH, env_bootstrap(env))


def development_scaffold(artifacts: Sequence[Artifact], account: Account, env: Sequence[str]) -> Scaffold:
    """Interactive user with passwordless sudo, nix and shell ergonomics."""
    b = _Builder()
    _common(b, artifacts, account, env, wheel=True)
    home = account.home

    b.directory(SUDOERS_DIR)
    b.file(f"{SUDOERS_DIR}/{account.user}", sudoers(account), 0o440)
    b.file(OS_RELEASE_PATH, OS_RELEASE)
    b.file(NIX_CONF_PATH, NIX_CONF)

    b.directory(home, 0o755, account)
    b.directory(f"{home}/.config", 0o755, account)
    b.directory(f"{home}/.config/nix", 0o755, account)
    b.file(f"{home}/.config/nix/nix.conf", NIX_CONF, owner=account)

    nix_direnv = find_artifact(artifacts, "nix-direnv")
    if nix_direnv is not None:
        direnvrc = f"source {nix_direnv.out}/share/nix-direnv/direnvrc\n"
        b.file(DIRENVRC_PATH, direnvrc)
        b.directory(f"{home}/.config/direnv", 0o755, account)
        b.file(f"{home}/.config/direnv/direnvrc", direnvrc, owner=account)

    hooks = []
    if find_artifact(artifacts, "direnv") is not None:
        hooks.append('eval "$(direnv hook bash)"')
    if find_artifact(artifacts, "starship") is not None:
        hooks.append('eval "$(starship init bash)"')
        b.file(f"{home}/.config/starship.toml", STARSHIP_TOML, owner=account)
    bashrc = "\n".join([f"source {SHELL_BOOTSTRAP_PATH}", *hooks]) + "\n"
    b.file(f"{home}/.bashrc", bashrc, owner=account)
    return b.build()


def runtime_scaffold(artifacts: Sequence[Artifact], account: Account, env: Sequence[str]) -> Scaffold:
    """Minimal non-root user owning the working directory; no grants."""
    b = _Builder()
    _common(b, artifacts, account, env, wheel=False)
    b.directory(account.home, 0o755, account)
    return b.build()

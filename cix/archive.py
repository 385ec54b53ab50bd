"""Deterministic wire encoding for layers and filesystem scaffolds.

Borrowed from the NAR format: every value is written as

    uint64_le(length) + raw bytes + zero-padding to an 8-byte boundary

and every collection is emitted in a fixed order, so the same logical
content always produces the same byte stream and the same digest. No
timestamps, no host-dependent metadata.

Layer grammar:
    str("cix-layer-1") { str("entry") str(<store path>) }

Scaffold grammar (entries sorted by path):
    str("cix-scaffold-1")
    { str("(") str("path") str(<p>) str("type") str(<kind>)
      str("mode") str(<octal>) str("owner") str(<uid>:<gid>)
      [str("contents") str(<data>) | str("target") str(<target>)]
      str(")") }

Unlike NAR, ownership and full permission bits ARE part of a scaffold:
identity and privilege files are only valid with the right modes.

See: nix/src/libutil/archive.cc — dump()
"""

import hashlib
import struct
from typing import Iterable

LAYER_MAGIC = "cix-layer-1"
SCAFFOLD_MAGIC = "cix-scaffold-1"


def _pad8(n: int) -> int:
    return (8 - n % 8) % 8


def _str(s: str | bytes) -> bytes:
    if isinstance(s, str):
        s = s.encode()
    return struct.pack("<Q", len(s)) + s + b"\0" * _pad8(len(s))


def encode_layer(paths: Iterable[str]) -> bytes:
    """Encode an ordered layer. Order is significant and preserved."""
    parts = [_str(LAYER_MAGIC)]
    for path in paths:
        parts.append(_str("entry"))
        parts.append(_str(path))
    return b"".join(parts)


def encode_scaffold(entries: Iterable) -> bytes:
    """Encode scaffold entries (objects with path/kind/mode/uid/gid/content/target)."""
    parts = [_str(SCAFFOLD_MAGIC)]
    for e in sorted(entries, key=lambda e: e.path):
        parts.append(_str("("))
        parts.append(_str("path"))
        parts.append(_str(e.path))
        parts.append(_str("type"))
        parts.append(_str(e.kind))
        parts.append(_str("mode"))
        parts.append(_str(f"{e.mode:04o}"))
        parts.append(_str("owner"))
        parts.append(_str(f"{e.uid}:{e.gid}"))
        if e.kind == "file":
            parts.append(_str("contents"))
            parts.append(_str(e.content))
        elif e.kind == "symlink":
            parts.append(_str("target"))
            parts.append(_str(e.target))
        parts.append(_str(")"))
    return b"".join(parts)


def digest(data: bytes) -> str:
    """OCI-style digest string: ``sha256:<hex>``."""
    return "sha256:" + hashlib.sha256(data).hexdigest()


def layer_digest(paths: Iterable[str]) -> str:
    return digest(encode_layer(paths))


def scaffold_digest(entries: Iterable) -> str:
    return digest(encode_scaffold(entries))

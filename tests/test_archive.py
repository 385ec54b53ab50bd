"""Tests for the deterministic layer/scaffold encoding."""

import struct
from dataclasses import dataclass

from cix.archive import (
    LAYER_MAGIC,
    _str,
    encode_layer,
    encode_scaffold,
    layer_digest,
    scaffold_digest,
)


@dataclass
class Entry:
    path: str
    kind: str
    mode: int
    uid: int = 0
    gid: int = 0
    content: str = ""
    target: str = ""


def test_str_padding():
    """Strings are length-prefixed and NUL-padded to eight bytes."""
    assert _str("") == struct.pack("<Q", 0)
    assert _str("abc") == struct.pack("<Q", 3) + b"abc" + b"\0" * 5
    assert len(_str("12345678")) == 16


def test_encode_layer_empty():
    """An empty layer still has a stable encoding."""
    assert encode_layer([]) == _str(LAYER_MAGIC)


def test_layer_order_significant():
    """Reordering paths changes the layer digest."""
    assert layer_digest(["/nix/store/a", "/nix/store/b"]) != layer_digest(["/nix/store/b", "/nix/store/a"])


def test_layer_digest_format():
    """Layer digests are sha256: followed by 64 hex chars."""
    d = layer_digest(["/nix/store/a"])
    assert d.startswith("sha256:")
    assert len(d) == len("sha256:") + 64


def test_scaffold_order_irrelevant():
    """Scaffold digest does not depend on entry order."""
    a = Entry("/etc", "directory", 0o755)
    b = Entry("/etc/passwd", "file", 0o644, content="root:x:0:0::/root:/bin/sh\n")
    assert encode_scaffold([a, b]) == encode_scaffold([b, a])


def test_scaffold_mode_matters():
    """A different mode gives a different scaffold digest."""
    a = Entry("/etc/shadow", "file", 0o640, content="x")
    b = Entry("/etc/shadow", "file", 0o644, content="x")
    assert scaffold_digest([a]) != scaffold_digest([b])


def test_scaffold_owner_matters():
    """Ownership is part of the scaffold digest."""
    a = Entry("/app", "directory", 0o755, 1000, 1000)
    b = Entry("/app", "directory", 0o755, 0, 0)
    assert scaffold_digest([a]) != scaffold_digest([b])


def test_scaffold_file_vs_symlink():
    """A file and a symlink at the same path hash differently."""
    f = Entry("/etc/passwd", "file", 0o777, content="/nix/store/x")
    s = Entry("/etc/passwd", "symlink", 0o777, target="/nix/store/x")
    assert scaffold_digest([f]) != scaffold_digest([s])

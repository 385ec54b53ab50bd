"""Hashing primitives for artifact fingerprints.

Fingerprints follow Nix's store path hash: SHA-256, XOR-folded down to
160 bits, rendered in Nix base32. The folding and the base32 variant
are both Nix-specific, so they live here rather than in hashlib/base64.

See: nix/src/libutil/hash.cc — compressHash(), printHash32()
"""

import hashlib

# Omits e, o, t, u.
NIX32_CHARS = "0123456789abcdfghijklmnpqrsvwxyz"
FINGERPRINT_BYTES = 20


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def compress_hash(hash_bytes: bytes, size: int) -> bytes:
    """XOR-fold a digest to ``size`` bytes.

    Every input byte contributes: byte ``i`` lands on ``i % size``.
    For a 32-byte digest folded to 20, the first 12 output bytes mix in
    the tail of the digest and the last 8 are copied as-is.
    """
    result = bytearray(size)
    for i, b in enumerate(hash_bytes):
        result[i % size] ^= b
    return bytes(result)


def nix32(data: bytes) -> str:
    """Encode bytes in Nix base32.

    Five-bit groups are taken from the highest bit offset down to zero,
    so the output reads "backwards" compared to RFC 4648.
    20 bytes -> 32 chars, 32 bytes -> 52 chars.
    """
    n = len(data)
    out_len = (n * 8 + 4) // 5
    chars = []
    for i in range(out_len - 1, -1, -1):
        bit = i * 5
        j, k = divmod(bit, 8)
        c = data[j] >> k
        if j + 1 < n:
            c |= data[j + 1] << (8 - k)
        chars.append(NIX32_CHARS[c & 0x1F])
    return "".join(chars)


def fingerprint(data: bytes) -> str:
    """32-char fingerprint of ``data``: nix32(fold20(sha256(data)))."""
    return nix32(compress_hash(sha256(data), FINGERPRINT_BYTES))

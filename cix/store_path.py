"""Store path computation for artifacts and synthesized files.

A store path is ``/nix/store/<fingerprint>-<name>``. The fingerprint is
32 chars of Nix base32 over the XOR-folded SHA-256 of a descriptor:

    "<type>:sha256:<hex(inner_hash)>:/nix/store:<name>"

Types used here:
  "output:out"  artifact outputs (inner hash = recipe hash)
  "text"        synthesized text, e.g. the scaffold layer
                (inner hash = sha256 of the content)

References are appended to the type as ":<path>", sorted. With no
references there is no trailing colon.

See: nix/src/libstore/store-api.cc — makeStorePath(), makeTextPath()
"""

from cix.hash import fingerprint, sha256

STORE_DIR = "/nix/store"


def make_store_path(type_prefix: str, inner_hash: bytes, name: str) -> str:
    descriptor = f"{type_prefix}:sha256:{inner_hash.hex()}:{STORE_DIR}:{name}"
    return f"{STORE_DIR}/{fingerprint(descriptor.encode())}-{name}"


def _make_type(base: str, refs: list[str]) -> str:
    return ":".join([base, *sorted(refs)])


def make_output_path(recipe_hash: bytes, name: str) -> str:
    """Output path of an artifact built from a recipe with this hash."""
    return make_store_path("output:out", recipe_hash, name)


def make_text_store_path(name: str, content: bytes, references: list[str] | None = None) -> str:
    return make_store_path(_make_type("text", references or []), sha256(content), name)


def split_store_path(path: str) -> tuple[str, str]:
    """Split ``/nix/store/<fingerprint>-<name>`` into (fingerprint, name)."""
    prefix = STORE_DIR + "/"
    if not path.startswith(prefix):
        raise ValueError(f"not a store path: {path!r}")
    base = path[len(prefix):].split("/", 1)[0]
    fp, sep, name = base.partition("-")
    if not sep or len(fp) != 32:
        raise ValueError(f"malformed store path: {path!r}")
    return fp, name

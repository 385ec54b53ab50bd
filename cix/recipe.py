"""Build recipes and their canonical form.

A recipe is everything the external builder needs to produce an
artifact: builder, args, env, pinned sources and the store paths of its
inputs. Two recipes that serialize to the same text are the same build.

The canonical form is ATerm-shaped, like a Nix .drv file:

    Recipe([inputs],[srcs],"platform","builder",[args],[(key,value)])

Inputs, srcs and env are sorted; args keep their order because the
builder sees them positionally.

See: nix/src/libstore/derivations.cc — unparse(), hashDerivationModulo()
"""

from dataclasses import dataclass

from cix.hash import sha256


@dataclass(frozen=True)
class Recipe:
    builder: str
    args: tuple[str, ...] = ()
    env: tuple[tuple[str, str], ...] = ()
    srcs: tuple[str, ...] = ()
    inputs: tuple[str, ...] = ()
    platform: str = "x86_64-linux"

    @property
    def env_dict(self) -> dict[str, str]:
        return dict(self.env)


def make_recipe(
    builder: str,
    args: list[str] | None = None,
    env: dict[str, str] | None = None,
    srcs: list[str] | None = None,
    inputs: list[str] | None = None,
    platform: str = "x86_64-linux",
) -> Recipe:
    """Normalize loose arguments into a hashable, sorted Recipe."""
    return Recipe(
        builder=builder,
        args=tuple(args or ()),
        env=tuple(sorted((env or {}).items())),
        srcs=tuple(sorted(set(srcs or ()))),
        inputs=tuple(sorted(set(inputs or ()))),
        platform=platform,
    )


def _escape(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")


def _list(items) -> str:
    return "[" + ",".join(f'"{_escape(s)}"' for s in items) + "]"


def serialize(recipe: Recipe) -> str:
    """Render the canonical ATerm text of a recipe."""
    env = ",".join(
        f'("{_escape(k)}","{_escape(v)}")' for k, v in sorted(recipe.env)
    )
    return "".join([
        "Recipe(",
        _list(sorted(recipe.inputs)), ",",
        _list(sorted(recipe.srcs)), ",",
        f'"{_escape(recipe.platform)}"', ",",
        f'"{_escape(recipe.builder)}"', ",",
        _list(recipe.args), ",",
        "[" + env + "]",
        ")",
    ])


def hash_recipe(recipe: Recipe) -> bytes:
    """SHA-256 of the canonical text.

    Inputs are store paths, and store paths embed their own fingerprint,
    so a change anywhere in the dependency graph changes this hash.
    """
    return sha256(serialize(recipe).encode())

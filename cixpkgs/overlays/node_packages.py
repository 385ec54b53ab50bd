"""Rebuild nodePackages.* against the patched nodejs.

Same packages, same versions, but their runtime node is
nodejs_22_patched, so the vulnerable npm never enters an image.
"""

from cixpkgs.overlay import rewrite_rule

NODE_PACKAGES = [
    "nodePackages.typescript",
    "nodePackages.typescript-language-server",
    "nodePackages.prettier",
    "nodePackages.eslint",
]


@rewrite_rule(
    "node-packages-patched",
    targets=NODE_PACKAGES,
    passthru_overrides=["nodejs"],
)
def node_packages_patched(prev):
    """nodePackages rebuilt with nodejs_22_patched (glob CVE fix)."""
    original = prev.nodejs_22
    patched = prev.nodejs_22_patched
    result = {}
    for name in NODE_PACKAGES:
        pkg = prev.resolve(name)
        result[name] = pkg.override(
            runtime_deps=[patched if d == original else d for d in pkg.runtime_deps],
            passthru={**pkg.passthru, "nodejs": "nodejs_22_patched"},
        )
    return result

"""The shipped package sets: composable building blocks for images.

Entries name catalog attributes, so the same sets resolve against the
upstream catalog or any overlaid one. Language sets come in pairs: the
runtime set (interpreter/compiler) and the ``*Dev`` set (tooling).
"""

from cixpkgs.package_set import PackageSetRegistry, include

PACKAGE_SETS = {
    # Foundation, always included.
    "base": [
        "bashInteractive",
        "coreutils",
        "findutils",
        "gnugrep",
        "gnused",
        "gawk",
        "gnutar",      # VS Code extracts its server with tar
        "gzip",
        "cacert",
        "tzdata",
    ],
    # Libraries for VS Code's prebuilt node binary.
    "vscodeCompat": [
        "glibc",
        "stdenv.cc.cc.lib",
    ],
    "devTools": [
        "gitMinimal",
        "curl",
        "jq",
        "ripgrep",
        "fd",
        "fzf",
        "bat",
        "diffutils",
        "just",
        "shadow",
        "sudo",
        "starship",
        "openssh",
    ],
    "nixTools": [
        "nix",
        "direnv",
        "nix-direnv",
    ],
    "python": ["python312"],
    "pythonDev": [
        "python312Packages.pip",
        "python312Packages.virtualenv",
        "uv",
        "ruff",
        "pyright",
    ],
    # Patched node: npm 11.6.4 (glob CVE-2025-64756).
    "node": ["nodejs_22_patched"],
    "nodeDev": [
        "bun",
        "nodePackages.typescript",
        "nodePackages.typescript-language-server",
        "nodePackages.prettier",
        "nodePackages.eslint",
    ],
    "go": ["go"],
    "goDev": ["gopls", "golangci-lint"],
    "rust": ["rustc", "cargo"],
    "rustDev": ["rust-analyzer", "clippy", "rustfmt"],
    # bashInteractive is already in base.
    "bash": [],
    "bashDev": ["shellcheck", "shellspec", "shfmt", "kcov"],
    # Everything a devcontainer carries before its language sets.
    "devcontainer": [
        include("base"),
        include("vscodeCompat"),
        include("nixTools"),
        include("devTools"),
    ],
}


def default_registry() -> PackageSetRegistry:
    return PackageSetRegistry(PACKAGE_SETS)

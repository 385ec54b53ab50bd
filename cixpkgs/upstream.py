"""The pinned upstream snapshot.

Stands in for ``import nixpkgs { ... }``: every artifact the shipped
package sets and overlays refer to, at the versions of one nixpkgs
revision. Recipes point at pinned source URLs; the external builder
does the rest.

``make_catalog()`` builds a fresh catalog on each call. There is no
module-level catalog: callers hold the value they were given.
"""

from cixpkgs.artifact import Artifact, Meta, artifact
from cixpkgs.catalog import ArtifactCatalog

UPSTREAM_SNAPSHOT = "nixpkgs-unstable-2025-01-01"

STDENV_BUILDER = "/bin/bash"
STDENV_ARGS = ["-e", "source-stdenv.sh", "default-builder.sh"]


def _pkg(
    name: str,
    version: str,
    license: str,
    description: str,
    homepage: str = "",
    runtime_deps: list[Artifact] | None = None,
    passthru: dict | None = None,
    srcs: list[str] | None = None,
) -> Artifact:
    return artifact(
        name,
        version,
        builder=STDENV_BUILDER,
        args=STDENV_ARGS,
        srcs=srcs or [f"mirror://{name}/{name}-{version}.tar.gz"],
        runtime_deps=runtime_deps,
        meta=Meta(license=license, homepage=homepage, description=description),
        passthru=passthru,
    )


def make_catalog(snapshot: str = UPSTREAM_SNAPSHOT) -> ArtifactCatalog:
    glibc = _pkg("glibc", "2.40-66", "LGPL-2.1-or-later", "GNU C library",
                 "https://www.gnu.org/software/libc/")
    gcc_lib = _pkg("gcc-lib", "13.3.0", "GPL-3.0-or-later", "libstdc++ (C++ standard library)",
                   "https://gcc.gnu.org/", [glibc])
    libc = [glibc]

    bash = _pkg("bash-interactive", "5.2p37", "GPL-3.0-or-later",
                "Interactive shell with readline support",
                "https://www.gnu.org/software/bash/", libc,
                passthru={"shellPath": "/bin/bash"})
    python3 = _pkg("python3", "3.12.8", "Python-2.0", "Python 3.12 interpreter",
                   "https://www.python.org", libc,
                   passthru={"pythonVersion": "3.12",
                             "sitePackages": "lib/python3.12/site-packages"})
    nodejs = _pkg("nodejs", "22.12.0", "MIT", "Node.js 22 LTS (bundles npm 10.9.4)",
                  "https://nodejs.org", [glibc, gcc_lib],
                  passthru={"python": python3, "majorVersion": "22"})

    def node_pkg(name, version, description, license="MIT"):
        return _pkg(name, version, license, description, runtime_deps=[nodejs],
                    passthru={"nodejs": "nodejs_22"})

    entries = {
        # base
        "bashInteractive": bash,
        "coreutils": _pkg("coreutils", "9.5", "GPL-3.0-or-later", "Basic Unix utilities", runtime_deps=libc),
        "findutils": _pkg("findutils", "4.10.0", "GPL-3.0-or-later", "find, xargs, locate", runtime_deps=libc),
        "gnugrep": _pkg("gnugrep", "3.11", "GPL-3.0-or-later", "grep for pattern matching", runtime_deps=libc),
        "gnused": _pkg("gnused", "4.9", "GPL-3.0-or-later", "sed for stream editing", runtime_deps=libc),
        "gawk": _pkg("gawk", "5.3.1", "GPL-3.0-or-later", "awk for text processing", runtime_deps=libc),
        "gnutar": _pkg("gnutar", "1.35", "GPL-3.0-or-later", "GNU tar", runtime_deps=libc),
        "gzip": _pkg("gzip", "1.13", "GPL-3.0-or-later", "gzip compression", runtime_deps=libc),
        "cacert": _pkg("nss-cacert", "3.107", "MPL-2.0", "TLS/SSL certificate bundle",
                       "https://curl.se/docs/caextract.html"),
        "tzdata": _pkg("tzdata", "2024b", "Public-Domain", "Timezone data"),
        # vscodeCompat
        "glibc": glibc,
        "stdenv.cc.cc.lib": gcc_lib,
        # devTools
        "gitMinimal": _pkg("git-minimal", "2.47.1", "GPL-2.0-only", "Version control", runtime_deps=libc),
        "curl": _pkg("curl", "8.11.1", "curl", "HTTP client", runtime_deps=libc),
        "jq": _pkg("jq", "1.7.1", "MIT", "JSON processor", runtime_deps=libc),
        "ripgrep": _pkg("ripgrep", "14.1.1", "MIT", "Fast grep alternative", runtime_deps=libc),
        "fd": _pkg("fd", "10.2.0", "MIT", "Fast find alternative", runtime_deps=libc),
        "fzf": _pkg("fzf", "0.57.0", "MIT", "Fuzzy finder"),
        "bat": _pkg("bat", "0.24.0", "MIT", "cat with syntax highlighting", runtime_deps=libc),
        "diffutils": _pkg("diffutils", "3.10", "GPL-3.0-or-later", "diff, cmp, sdiff", runtime_deps=libc),
        "just": _pkg("just", "1.38.0", "CC0-1.0", "Command runner", runtime_deps=libc),
        "shadow": _pkg("shadow", "4.16.0", "BSD-3-Clause", "User management tools", runtime_deps=libc),
        "sudo": _pkg("sudo", "1.9.16p2", "ISC", "Privilege escalation", runtime_deps=libc),
        "starship": _pkg("starship", "1.21.1", "ISC", "Cross-shell prompt", runtime_deps=libc),
        "openssh": _pkg("openssh", "9.9p1", "BSD-2-Clause", "SSH client", runtime_deps=libc),
        # nixTools
        "nix": _pkg("nix", "2.24.11", "LGPL-2.1-or-later", "Nix package manager", runtime_deps=[glibc, gcc_lib]),
        "direnv": _pkg("direnv", "2.35.0", "MIT", "Directory-based environment switching"),
        "nix-direnv": _pkg("nix-direnv", "3.0.6", "MIT", "Fast nix integration for direnv", runtime_deps=[bash]),
        # python
        "python312": python3,
        "python312Packages.pip": _pkg("python3.12-pip", "24.2", "MIT", "Package installer",
                                      runtime_deps=[python3]),
        "python312Packages.virtualenv": _pkg("python3.12-virtualenv", "20.28.0", "MIT",
                                             "Virtual environment creator", runtime_deps=[python3]),
        "uv": _pkg("uv", "0.5.11", "MIT", "Fast Python package installer", runtime_deps=libc),
        "ruff": _pkg("ruff", "0.8.4", "MIT", "Fast Python linter", runtime_deps=libc),
        "pyright": _pkg("pyright", "1.1.390", "MIT", "Type checker for the Python language",
                        "https://github.com/Microsoft/pyright", [nodejs]),
        # node
        "nodejs_22": nodejs,
        "bun": _pkg("bun", "1.1.42", "MIT", "Fast JavaScript runtime/bundler", runtime_deps=libc),
        "nodePackages.typescript": node_pkg("typescript", "5.7.2", "TypeScript compiler", "Apache-2.0"),
        "nodePackages.typescript-language-server": node_pkg(
            "typescript-language-server", "4.3.3", "TypeScript language server"),
        "nodePackages.prettier": node_pkg("prettier", "3.4.2", "Code formatter"),
        "nodePackages.eslint": node_pkg("eslint", "9.17.0", "JavaScript linter"),
        # go
        "go": _pkg("go", "1.23.4", "BSD-3-Clause", "Go compiler and tools"),
        "gopls": _pkg("gopls", "0.17.1", "BSD-3-Clause", "Go language server"),
        "golangci-lint": _pkg("golangci-lint", "1.62.2", "GPL-3.0-only", "Go linter aggregator"),
        # rust
        "rustc": _pkg("rustc", "1.83.0", "MIT OR Apache-2.0", "Rust compiler", runtime_deps=[glibc, gcc_lib]),
        "cargo": _pkg("cargo", "1.83.0", "MIT OR Apache-2.0", "Rust package manager", runtime_deps=libc),
        "rust-analyzer": _pkg("rust-analyzer", "2024-12-23", "MIT OR Apache-2.0", "Rust language server"),
        "clippy": _pkg("clippy", "1.83.0", "MIT OR Apache-2.0", "Rust linter"),
        "rustfmt": _pkg("rustfmt", "1.83.0", "MIT OR Apache-2.0", "Rust code formatter"),
        # bashDev
        "shellcheck": _pkg("shellcheck", "0.10.0", "GPL-3.0-or-later", "Shell script static analysis tool"),
        # nixpkgs ships shellspec without license metadata; see the license-fixes overlay.
        "shellspec": _pkg("shellspec", "0.28.1", "", "BDD testing framework for shell scripts",
                          runtime_deps=[bash]),
        "shfmt": _pkg("shfmt", "3.10.0", "BSD-3-Clause", "Shell script formatter"),
        "kcov": _pkg("kcov", "42", "GPL-2.0-only", "Code coverage tool", runtime_deps=libc),
        # misc
        "busybox": _pkg("busybox", "1.36.1", "GPL-2.0-only", "Tiny versions of common UNIX utilities",
                        "https://busybox.net", srcs=["https://busybox.net/downloads/busybox-1.36.1.tar.bz2"]),
    }
    return ArtifactCatalog(snapshot, entries)

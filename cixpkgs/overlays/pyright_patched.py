"""pyright with esbuild 0.27.1, fixing Go stdlib CVEs.

esbuild 0.27.0+ is compiled with Go 1.25.4, which fixes among others:
  - CVE-2025-61729 (HIGH): HostnameError.Error() resource exhaustion
  - CVE-2025-58187 (HIGH): x509 name constraint checking DoS
  - CVE-2025-58186 (HIGH): HTTP cookie parsing memory exhaustion
  - CVE-2025-58183 (HIGH): archive/tar sparse map allocation

esbuild is pinned exactly, not as a range, so the lock file and the
embedded Go stdlib version stay predictable. Also runs on
nodejs_22_patched for the glob CVE.

Remove once nixpkgs updates pyright with a fixed esbuild.
"""

from cixpkgs.artifact import Meta
from cixpkgs.overlay import rewrite_rule

PYRIGHT_VERSION = "1.1.407"
PYRIGHT_SRC_HASH = "sha256-TQrmA65CzXar++79DLRWINaMsjoqNFdvNlwDzAcqOjM="
ESBUILD_VERSION = "0.27.1"
NPM_DEPS_HASH = "sha256-NyZAvboojw9gTj52WrdNIL2Oyy2wtpVnb5JyxKLJqWM="


@rewrite_rule("pyright-patched", targets=["pyright"])
def pyright_patched(prev):
    """pyright 1.1.407 with esbuild 0.27.1 (Go stdlib CVEs)."""
    pyright = prev.pyright
    return {
        "pyright": pyright.override(
            version=PYRIGHT_VERSION,
            srcs=[f"github:Microsoft/pyright/{PYRIGHT_VERSION}", PYRIGHT_SRC_HASH],
            env={"esbuildVersion": ESBUILD_VERSION, "npmDepsHash": NPM_DEPS_HASH},
            runtime_deps=[prev.nodejs_22_patched],
            meta=Meta(
                license="MIT",
                homepage="https://github.com/Microsoft/pyright",
                description=(
                    "Type checker for the Python language "
                    f"(patched with esbuild {ESBUILD_VERSION} for CVE fixes)"
                ),
            ),
        ),
    }

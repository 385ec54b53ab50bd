"""nodejs 22 with npm 11.6.4, fixing the glob CVE (CVE-2025-64756).

Upstream nodejs_22 bundles npm 10.9.4, which ships glob 10.4.5. The
patched node copies the node binary and headers from nodejs_22 and
installs a standalone npm 11.6.4 (glob 13.0.0) next to it.

nodejs_22 is a build input only. Keeping a runtime reference to it
would drag the original store path, and its vulnerable npm, into every
image closure where scanners would flag it.

Remove once nixpkgs ships a nodejs whose bundled glob is >= 10.5.0.
"""

from cixpkgs.artifact import Meta, artifact
from cixpkgs.overlay import rewrite_rule

NPM_VERSION = "11.6.4"
NPM_TARBALL = "https://registry.npmjs.org/npm/-/npm-11.6.4.tgz"
NPM_HASH = "sha256-nAftyhKFPN2/T+1ONySFqmDAZPm/PkzRV6LbVRiheSs="


@rewrite_rule("nodejs-patched", adds=["nodejs_22_patched"])
def nodejs_patched(prev):
    """Node.js 22 with standalone npm 11.6.4 (CVE-2025-64756)."""
    nodejs = prev.nodejs_22
    npm = artifact(
        "npm-standalone",
        NPM_VERSION,
        builder="/bin/bash",
        args=["-e", "install-npm.sh"],
        srcs=[NPM_TARBALL, NPM_HASH],
        meta=Meta(
            license="Artistic-2.0",
            homepage="https://www.npmjs.com/",
            description=f"npm package manager (standalone, version {NPM_VERSION})",
        ),
    )
    patched = artifact(
        "nodejs-patched",
        # Same version as nodejs_22: consumers derive source names from it.
        nodejs.version,
        builder="/bin/bash",
        args=["-e", "wrap-node.sh"],
        env={"npmVersion": NPM_VERSION},
        deps=[nodejs],
        runtime_deps=[npm, *nodejs.runtime_deps],
        meta=Meta(
            license=nodejs.meta.license,
            homepage=nodejs.meta.homepage,
            description=f"Node.js with patched npm {NPM_VERSION} (CVE-2025-64756 fix)",
        ),
        # Everything buildNpmPackage and friends read off nodejs, python included.
        passthru=nodejs.passthru,
    )
    return {"nodejs_22_patched": patched}

"""The default overlay chain.

Applied in this order:

    nodejs-patched          adds nodejs_22_patched
    node-packages-patched   nodePackages.* onto the patched node
    cve-patches             pyright-patched // busybox-patched
    license-fixes           shellspec-license

The node rules must come first: pyright-patched rebuilds pyright
against the nodejs_22_patched they introduce. Members of a group see
the same catalog and must not produce the same name.
"""

from cixpkgs.overlay import OverlayChain, merge_rules
from cixpkgs.overlays.busybox_patched import busybox_patched
from cixpkgs.overlays.license_fixes import shellspec_license
from cixpkgs.overlays.node_packages import node_packages_patched
from cixpkgs.overlays.nodejs_patched import nodejs_patched
from cixpkgs.overlays.pyright_patched import pyright_patched

CUSTOM_BUILDS = (nodejs_patched, node_packages_patched)
CVE_PATCHES = merge_rules("cve-patches", [pyright_patched, busybox_patched])
LICENSE_FIXES = merge_rules("license-fixes", [shellspec_license])


def default_chain() -> OverlayChain:
    return OverlayChain([*CUSTOM_BUILDS, CVE_PATCHES, LICENSE_FIXES])


__all__ = [
    "CUSTOM_BUILDS", "CVE_PATCHES", "LICENSE_FIXES", "default_chain",
    "busybox_patched", "node_packages_patched", "nodejs_patched",
    "pyright_patched", "shellspec_license",
]

"""busybox 1.37.0.

nixpkgs carries 1.36.1 with backported patches, but scanners go by the
version number. 1.37.0 includes the fixes upstream:
  - CVE-2022-28391: nslookup printable character sanitization
  - CVE-2022-48174 (CRITICAL): shell segfault on malformed input
  - CVE-2023-42363 .. CVE-2023-42366: awk fixes
  - tar TOCTOU symlink race

Remove once nixpkgs updates busybox to 1.37.0.
"""

from cixpkgs.overlay import rewrite_rule

BUSYBOX_VERSION = "1.37.0"
BUSYBOX_URL = f"https://busybox.net/downloads/busybox-{BUSYBOX_VERSION}.tar.bz2"
BUSYBOX_HASH = "sha256-MxHf8y50ZJn03w1d8E1+s5Y4LX4Qi7klDntRm4NwQ6Q="


@rewrite_rule("busybox-patched", targets=["busybox"])
def busybox_patched(prev):
    """busybox 1.37.0 (upstream CVE fixes)."""
    return {
        "busybox": prev.busybox.override(
            version=BUSYBOX_VERSION,
            srcs=[BUSYBOX_URL, BUSYBOX_HASH],
        ),
    }

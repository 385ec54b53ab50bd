"""License metadata corrections.

Metadata only: meta does not enter the fingerprint, so these rules
never cause a rebuild.
"""

from dataclasses import replace

from cixpkgs.overlay import rewrite_rule


@rewrite_rule("shellspec-license", targets=["shellspec"])
def shellspec_license(prev):
    """shellspec is MIT licensed; upstream metadata leaves it blank."""
    pkg = prev.shellspec
    return {"shellspec": pkg.override(meta=replace(pkg.meta, license="MIT"))}

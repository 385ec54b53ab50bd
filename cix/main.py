#!/usr/bin/env python3
"""cix — reproducible container images from a pinned package catalog."""

import argparse
import json
import logging
import sys

from cix.errors import CixError
from cixpkgs import export, harness
from cixpkgs.overlay import describe_chain
from cixpkgs.package_set import resolve_set
from cixpkgs.realize import realize
from cixpkgs.sets import default_registry
from cixpkgs.targets import TARGETS, build_target, effective_catalog, find_target
from cixpkgs.upstream import make_catalog

logger = logging.getLogger("cix")


def cmd_build(args):
    spec = build_target(find_target(args.target), effective_catalog())
    realize(spec)
    path = export.write_image(spec, args.out_dir)
    print(path)


def cmd_show(args):
    spec = build_target(find_target(args.target), effective_catalog())
    json.dump(export.manifest(spec), sys.stdout, indent=2, sort_keys=True)
    print()


def cmd_resolve_set(args):
    for a in resolve_set(args.expr, default_registry(), effective_catalog()):
        print(a.out)


def cmd_overlays(args):
    base = make_catalog()
    for line in describe_chain(base, effective_catalog(base.snapshot)):
        print(line)


def cmd_test(args):
    results = harness.run(TARGETS, args.filter, effective_catalog())
    if not results:
        raise CixError(f"no image target matches {args.filter!r}")
    for r in results:
        print(f"{'PASS' if r.passed else 'FAIL'} {r.target}")
        for p in r.problems:
            print(f"  {p}")
    failed = [r for r in results if not r.passed]
    logger.info("%d passed, %d failed", len(results) - len(failed), len(failed))
    if failed:
        sys.exit(1)


def main(argv=None):
    parser = argparse.ArgumentParser(prog="cix", description="Reproducible container images")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # build
    p = sub.add_parser("build", help="Assemble an image target and write its archive")
    p.add_argument("target")
    p.add_argument("-o", "--out-dir", default=".")
    p.set_defaults(func=cmd_build)

    # show
    p = sub.add_parser("show", help="Print an image target's manifest as JSON")
    p.add_argument("target")
    p.set_defaults(func=cmd_show)

    # resolve-set
    p = sub.add_parser("resolve-set", help="Resolve a package set expression (A ++ B)")
    p.add_argument("expr")
    p.set_defaults(func=cmd_resolve_set)

    # overlays
    p = sub.add_parser("overlays", help="Show what the overlay chain replaces")
    p.set_defaults(func=cmd_overlays)

    # test
    p = sub.add_parser("test", help="Build and validate image targets")
    p.add_argument("filter", nargs="?", default=None, help="Target name, test type or role")
    p.set_defaults(func=cmd_test)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    if not args.command:
        parser.print_help()
        sys.exit(1)
    try:
        args.func(args)
    except CixError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

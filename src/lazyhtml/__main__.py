"""Command-line interface: `python -m lazyhtml [FILE]`."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from .config import LazyLoadConfig
from .filter import LazyLoad
from .rewrites_spec import DEFAULT_INTEGRATIONS, Integration

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .errors import RewriteNote


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lazyhtml",
        description="Rewrite a rendered HTML page for lazy loading and WebP alternates.",
    )
    parser.add_argument("path", nargs="?", help="HTML file to read (defaults to stdin)")
    parser.add_argument("--fold", type=int, default=0, help="Number of leading images left untouched")
    parser.add_argument("--domain", default="", help="Image delivery domain that negotiates WebP via query args")
    parser.add_argument(
        "--no-lqip",
        action="store_true",
        help="Always use the blank GIF placeholder, even for delivery-domain images",
    )
    parser.add_argument(
        "--integration",
        action="append",
        choices=sorted(i.value for i in Integration),
        help="Enable an integration (repeatable; replaces the default set)",
    )
    parser.add_argument("--notes", action="store_true", help="Print rewrite notes to stderr")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    if args.fold < 0:
        sys.stderr.write("lazyhtml: --fold must be >= 0\n")
        return 2

    config = LazyLoadConfig(
        above_the_fold_count=args.fold,
        use_low_quality_placeholder=not args.no_lqip,
        alternate_delivery_domain=args.domain,
        enabled_integrations=args.integration if args.integration else DEFAULT_INTEGRATIONS,
    )

    try:
        if args.path:
            html = Path(args.path).read_text(encoding="utf-8")
        else:
            html = sys.stdin.read()
    except (OSError, UnicodeDecodeError) as exc:
        sys.stderr.write(f"lazyhtml: cannot read {args.path or 'stdin'}: {exc}\n")
        return 2

    notes: list[RewriteNote] = []
    sys.stdout.write(LazyLoad(config).filter_page_output(html, notes=notes))

    if args.notes:
        for note in notes:
            sys.stderr.write(f"{note}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

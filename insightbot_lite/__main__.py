"""Command-line entry for insightbot_lite.

Without options this starts the plugin server. ``--preview`` renders a single
share URL into a standalone 800x480 preview page instead.
"""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn, Optional

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for insightbot_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="insightbot_lite",
        description="InsightBot Lite - TRMNL plugin server for PostHog shared insights",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m insightbot_lite                     # Start server on default port (3000)
  python -m insightbot_lite --port 8080         # Start server on port 8080
  python -m insightbot_lite --preview preview.html \\
      --share-url https://us.posthog.com/shared/AbCdEf123
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 3000, or from INSIGHTBOT_WEB_PORT env var)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging for insightbot_lite modules",
    )
    parser.add_argument(
        "--preview",
        metavar="OUTPUT",
        help="Write an HTML preview of --share-url to OUTPUT and exit",
    )
    parser.add_argument(
        "--share-url",
        metavar="URL",
        help="PostHog shared insight URL to render with --preview",
    )

    return parser


def _write_preview(output: str, share_url: Optional[str]) -> int:
    """Render ``share_url`` into a preview file. Returns a process exit code."""
    import asyncio
    import os

    from . import _init_logging
    from .preview import write_preview

    if not share_url:
        print("Error: --share-url is required with --preview", file=sys.stderr)
        return 2

    _init_logging(os.environ.get("INSIGHTBOT_LOG_LEVEL"))
    path = asyncio.run(write_preview(share_url, output))
    print(f"Written: {path}")
    return 0


def main() -> NoReturn:
    """Run the insightbot_lite CLI."""
    parser = _create_parser()
    args = parser.parse_args()

    if args.preview:
        sys.exit(_write_preview(args.preview, args.share_url))

    try:
        run_server(args)
    except KeyboardInterrupt:
        sys.exit(130)
    sys.exit(0)


if __name__ == "__main__":
    main()

"""Subcommand dispatcher for trackcompose.

Usage:
    trackcompose render --manifest project.yaml [--settings render.yaml]
    trackcompose probe  footage.mp4
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="trackcompose",
        description="Multi-track timeline rendering through ffmpeg filter graphs.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Render a project manifest, one file per region")
    subparsers.add_parser("probe", help="Show resolution, framerate and duration of a video")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .render_cli import main as render_main
        render_main(remaining)
    elif parsed.command == "probe":
        from .probe_cli import main as probe_main
        probe_main(remaining)


if __name__ == "__main__":
    main()

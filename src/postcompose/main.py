"""Subcommand dispatcher for postcompose.

Usage:
    postcompose render   --manifest post.yaml --output post.mp4
    postcompose preview  --manifest post.yaml --output frame.png --frame 15
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="postcompose",
        description="Compose social-media posts from images and video.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Render a post manifest to a 10s mp4")
    subparsers.add_parser("preview", help="Render one frame of a post to PNG")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .cli import main as render_main
        render_main(remaining)
    elif parsed.command == "preview":
        from .preview_cli import main as preview_main
        preview_main(remaining)


if __name__ == "__main__":
    main()

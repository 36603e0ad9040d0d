"""Main module for the site images CLI."""

import sys
import argparse
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core import SiteImagesError, configure_debug_logging, get_logger, load_config
from .core.factories import RendererFactory
from .core.observability import MetricsCollector
from .core.services import KeepFilesRegistry
from .processors import PROCESSORS
from .processors.common import summarize


def build_parser() -> argparse.ArgumentParser:
    """
    Build the `ArgumentParser` for the "render" and "version" commands.
    """
    parser = argparse.ArgumentParser(
        prog="site-images",
        description="Site Images - resized, cached images for static sites",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Render one directive with the presets from _config.yml
  site-images render --config _config.yml 'gallery photos/poster.jpg alt="Poster"'

  # Render every directive listed in a file on a thread pool
  site-images render --config _config.yml --file directives.txt --processor multithread

  # Show version
  site-images version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    render_parser = subparsers.add_parser(
        "render", help="Render image directives to markup, generating images as needed"
    )
    render_parser.add_argument("directives", nargs="*", help="Directive strings")
    render_parser.add_argument(
        "--config", required=True, help="Site configuration file (YAML)"
    )
    render_parser.add_argument(
        "--file", default=None, help="File with one directive per line"
    )
    render_parser.add_argument(
        "--site-source", default=None, help="Site source directory (default: from config)"
    )
    render_parser.add_argument(
        "--site-dest", default=None, help="Site output directory (default: from config)"
    )
    render_parser.add_argument(
        "--processor",
        type=str,
        default="serial",
        choices=sorted(PROCESSORS),
        help="Processing strategy to use (default: serial)",
    )
    render_parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )

    subparsers.add_parser("version", help="Show version information")
    return parser


def read_directives(args: argparse.Namespace) -> List[str]:
    """Collect directives from the command line and the optional --file."""
    directives = list(args.directives)
    if args.file:
        lines = Path(args.file).read_text(encoding="utf-8").splitlines()
        directives.extend(line for line in lines if line.strip() and not line.lstrip().startswith("#"))
    return directives


def run_render(args: argparse.Namespace) -> int:
    """
    Render the directives given on the command line.

    Prints each directive's markup (an empty line for a failed directive)
    and returns 1 if any directive failed.
    """
    logger = get_logger("cli")
    if args.debug:
        configure_debug_logging()

    config = load_config(args.config, site_source=args.site_source, site_dest=args.site_dest)
    keep_files = KeepFilesRegistry()
    metrics = MetricsCollector()
    renderer = RendererFactory.create_renderer(
        config, keep_files=keep_files, metrics_collector=metrics
    )

    directives = read_directives(args)
    if not directives:
        logger.info("No directives to render")
        return 0

    processor_name, process_batch = PROCESSORS[args.processor]
    logger.info(f"Rendering {len(directives)} directive(s) with the {processor_name} processor")
    results = process_batch(directives, renderer)

    for result in results:
        print(result.markup.rstrip("\n"))

    summary = summarize(results)
    logger.info(
        f"Rendered {summary['rendered_count']}/{summary['total_items']} directive(s), "
        f"generated {summary['generated_count']} image(s), "
        f"{metrics.count('cache_hit')} cache hit(s). Keep files: {', '.join(keep_files.entries)}"
    )
    return 1 if summary["error_count"] else 0


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the command-line interface of site images.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "render":
        try:
            sys.exit(run_render(args))
        except SiteImagesError as e:
            get_logger("cli").error(f"{type(e).__name__}: {e}")
            sys.exit(1)
        except OSError as e:
            get_logger("cli").error(f"Can't read input: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            get_logger("cli").warning("Rendering interrupted by user.")
            sys.exit(130)

    elif args.command == "version":
        print("Site Images CLI")
        print(f"Version {__version__}")
        print("Resized, content-addressed images for static sites")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

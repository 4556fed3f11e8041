"""Main entry point for pdf-export."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pdf_export import __version__
from pdf_export.config.settings import Settings
from pdf_export.errors import PDFExportError
from pdf_export.utils.logging import configure_logging


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError("value must be >= 0")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return number


def _add_render_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Where to write the PDF (defaults to OUTPUT_DIR/OUTPUT_FILENAME)",
    )
    parser.add_argument("--format", default=None, help="Paper format, e.g. A4 or Letter")
    parser.add_argument("--landscape", action="store_true", help="Landscape orientation")
    parser.add_argument(
        "--no-background",
        action="store_true",
        help="Do not print background colors and images",
    )
    parser.add_argument(
        "--no-retry",
        action="store_true",
        help="Make exactly one attempt",
    )
    parser.add_argument(
        "--max-retries",
        type=_non_negative_int,
        default=None,
        help="Retries after the first attempt (overrides RENDER_DEFAULT_MAX_RETRIES)",
    )
    parser.add_argument(
        "--timeout-ms",
        type=_positive_int,
        default=None,
        help="Content load budget in ms (capped by the environment profile)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="pdf-export",
        description="pdf-export: render HTML or web pages to PDF with headless Chromium",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m pdf_export html invoice.html -o invoice.pdf
  python -m pdf_export url https://example.com --format Letter
  python -m pdf_export --force-constrained check
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set the log level (overrides settings)",
    )
    parser.add_argument(
        "--force-constrained",
        action="store_true",
        help="Use the constrained (serverless) profile regardless of detection",
    )

    subparsers = parser.add_subparsers(
        dest="mode",
        title="modes",
        description="Available commands",
    )

    html_parser = subparsers.add_parser("html", help="Render a local HTML file")
    html_parser.add_argument("path", type=Path, help="HTML file to render")
    _add_render_arguments(html_parser)

    url_parser = subparsers.add_parser("url", help="Render a web page")
    url_parser.add_argument("url", help="URL to navigate to")
    _add_render_arguments(url_parser)

    subparsers.add_parser(
        "check",
        help="Launch the browser once and report version and budgets",
    )

    return parser


def _build_request(parsed: argparse.Namespace, source: dict[str, str]):
    from pdf_export.rendering.config import get_render_config
    from pdf_export.rendering.models import PrintOptions, RenderRequest

    print_fields: dict[str, object] = {}
    if parsed.format:
        print_fields["format"] = parsed.format
    if parsed.landscape:
        print_fields["landscape"] = True
    if parsed.no_background:
        print_fields["print_background"] = False

    max_retries = parsed.max_retries
    if max_retries is None:
        max_retries = get_render_config().default_max_retries

    return RenderRequest(
        **source,
        print_options=PrintOptions(**print_fields),
        timeout_ms=parsed.timeout_ms,
        enable_retry=not parsed.no_retry,
        max_retries=max_retries,
    )


def _run_render(parsed: argparse.Namespace, settings: Settings) -> int:
    from pdf_export.rendering.service import detect_profile, render_pdf

    if parsed.mode == "html":
        try:
            html = parsed.path.read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot read {parsed.path}: {e}", file=sys.stderr)
            return 1
        source = {"html": html}
    else:
        source = {"url": parsed.url}

    request = _build_request(parsed, source)
    profile = detect_profile(force_constrained=parsed.force_constrained or None)

    try:
        result = asyncio.run(render_pdf(request, profile=profile))
    except PDFExportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output_path: Path = parsed.output or settings.default_output_path()
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(result.pdf_bytes)
    except OSError as e:
        print(f"Error: cannot write {output_path}: {e}", file=sys.stderr)
        return 1

    meta = result.metadata
    print(f"Wrote: {output_path}")
    print(f"Size: {meta.byte_size / 1024:.2f} KB")
    print(f"Duration: {meta.duration_ms}ms")
    print(f"Retries: {meta.retries}")
    print(f"Title: {meta.page_title}")
    return 0


async def _check_browser(force_constrained: bool) -> dict:
    from pdf_export.rendering.service import detect_profile, get_browser

    profile = detect_profile(force_constrained=force_constrained or None)
    session = await get_browser(profile=profile)
    try:
        return {
            "browser_version": session.browser_version,
            "launch_args": session.launch_args(),
            **profile.describe(),
        }
    finally:
        await session.release()


def _run_check(parsed: argparse.Namespace) -> int:
    try:
        report = asyncio.run(_check_browser(parsed.force_constrained))
    except PDFExportError as e:
        print(f"Browser check failed: {e}", file=sys.stderr)
        return 1
    print(json.dumps(report, indent=2))
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    try:
        settings = Settings()
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    log_level = parsed.log_level or settings.log_level
    logger = configure_logging(level=log_level)

    if parsed.mode is None:
        parser.print_help()
        return 0

    logger.info(f"pdf-export v{__version__} running {parsed.mode}")

    if parsed.mode == "check":
        return _run_check(parsed)

    return _run_render(parsed, settings)


if __name__ == "__main__":
    sys.exit(main())

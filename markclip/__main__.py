"""CLI entry point: python -m markclip [--url URL] [--file PATH] [options]"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import yaml
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from markclip import settings
from markclip.document import PageDocument
from markclip.export import export_page
from markclip.items import ExportOptions, ExportResult
from markclip.profiles import profile_settings
from markclip.registry import ParserRegistry

logger = logging.getLogger(__name__)

# Summary and errors go to stderr; stdout carries the Markdown when --out is absent
console = Console(stderr=True)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markclip",
        description=(
            "Convert a web page to clean Markdown.\n"
            "Picks a site-specific parser (Medium, GitHub README, TryHackMe) or a "
            "generic extractor, then renders headings, lists, code and tables."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--url", default="", metavar="URL",
                        help="Page URL (base for relative links; loaded with --browser)")
    parser.add_argument("--file", default=None, metavar="PATH",
                        help="Read the page HTML from PATH ('-' or omitted: stdin)")
    parser.add_argument("--browser", action="store_true", default=False,
                        help="Load --url in headless Chromium (Playwright) as a live page")
    parser.add_argument("--parser", default=None, metavar="NAME",
                        help="Force a parser by name (default: auto)")
    parser.add_argument("--embed-images", action="store_true", default=None,
                        help="Inline images as data: URIs")
    parser.add_argument("--no-metadata", dest="include_metadata", action="store_false",
                        default=None, help="Omit the front-matter header")
    parser.add_argument("--profile", default=None, metavar="YAML",
                        help="YAML profile with default and per-domain options")
    parser.add_argument("--out", default=None, metavar="PATH",
                        help="Write to PATH (a directory gets <title>.md); default: stdout")
    parser.add_argument("--trace", action="store_true", default=False,
                        help="Log the parser resolution trace")
    parser.add_argument("--list-parsers", action="store_true", default=False,
                        help="List registered parsers and exit")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        metavar="{DEBUG,INFO,WARNING,ERROR}",
                        help=f"Logging level (default: {settings.LOG_LEVEL})")
    return parser


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format=settings.LOG_FORMAT,
        stream=sys.stderr,
    )


def _resolve_options(args: argparse.Namespace) -> ExportOptions:
    """Profile values first, then any flag given on the command line."""
    merged: dict[str, Any] = {}
    if args.profile:
        merged.update(profile_settings(args.profile, args.url))
    for key in ("embed_images", "include_metadata", "parser"):
        value = getattr(args, key)
        if value is not None:
            merged[key] = value
    return ExportOptions(**{k: v for k, v in merged.items() if k in ExportOptions.model_fields})


def _read_html(path: str | None) -> str:
    if path in (None, "-"):
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

async def _export_in_browser(
    url: str, options: ExportOptions, registry: ParserRegistry,
) -> ExportResult:
    from playwright.async_api import async_playwright

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=True)
        try:
            page = await browser.new_page()
            await page.goto(url, wait_until="networkidle")
            document = PageDocument.from_playwright(page, await page.content())
            return await export_page(document, options, registry=registry)
        finally:
            await browser.close()


async def _run(args: argparse.Namespace, options: ExportOptions) -> ExportResult:
    registry = ParserRegistry(trace=True if args.trace else None)
    try:
        if args.browser:
            return await _export_in_browser(args.url, options, registry)
        document = PageDocument(_read_html(args.file), args.url)
        return await export_page(document, options, registry=registry)
    finally:
        await registry.pipeline.embedder.aclose()


def _write_output(result: ExportResult, out: str | None) -> Path | None:
    if not out:
        sys.stdout.write(result.markdown)
        return None
    target = Path(out)
    if target.is_dir():
        target = target / (result.filename or "untitled.md")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(result.markdown, encoding="utf-8")
    return target


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def _print_parsers(registry: ParserRegistry) -> None:
    tbl = Table(title="[bold cyan]Registered parsers[/bold cyan]", box=box.SIMPLE_HEAVY)
    tbl.add_column("Name", style="cyan", no_wrap=True)
    tbl.add_column("Domains", style="green")
    for parser in [*registry.list(), registry.generic]:
        domains = ", ".join(
            f"{d.pattern} (+{d.priority})" if d.priority else d.pattern
            for d in parser.domains
        )
        tbl.add_row(parser.name, domains or "(any)")
    console.print(tbl)


def _print_summary(result: ExportResult, written: Path | None) -> None:
    resolution = result.resolution or {}
    candidates = ", ".join(
        f"{c['name']}={c['score']}" for c in resolution.get("candidates", [])
    )
    lines = [
        f"[bold]Parser     :[/bold] [green]{result.parser or '-'}[/green]",
        f"[bold]Reason     :[/bold] {resolution.get('reason', '-')}",
        f"[bold]Candidates :[/bold] {candidates or '-'}",
    ]
    if result.ok:
        lines.append(f"[bold]Title      :[/bold] [cyan]{escape(result.title or '-')}[/cyan]")
        meta = result.metadata
        if meta is not None:
            for label, value in (
                ("Author     ", meta.author),
                ("Site       ", meta.site_name),
                ("Canonical  ", meta.canonical_url),
            ):
                if value:
                    lines.append(f"[bold]{label}:[/bold] {escape(value)}")
        lines.append(f"[bold]Images     :[/bold] {len(result.assets or [])}")
        lines.append(f"[bold]Output     :[/bold] [yellow]{written or 'stdout'}[/yellow]")
    else:
        error = result.error
        lines.append(
            f"[bold]Error      :[/bold] [red]{error.reason if error else 'unknown'}"
            f"[/red] {escape(error.message or '') if error else ''}",
        )
    console.print(
        Panel.fit(
            "\n".join(lines),
            title="[bold]markclip[/bold]",
            border_style="green" if result.ok else "red",
        ),
    )


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    if args.list_parsers:
        _print_parsers(ParserRegistry())
        return 0

    if args.browser and not args.url:
        print("ERROR: --browser needs --url", file=sys.stderr)
        return 1

    try:
        options = _resolve_options(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"ERROR: Could not load profile {args.profile}: {exc}", file=sys.stderr)
        return 1

    try:
        result = asyncio.run(_run(args, options))
    except OSError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except Exception:
        logger.exception("Export failed")
        return 1

    written = None
    if result.ok:
        try:
            written = _write_output(result, args.out)
        except OSError as exc:
            print(f"ERROR: Could not write {args.out}: {exc}", file=sys.stderr)
            return 1

    _print_summary(result, written)
    if not result.ok:
        message = result.error.message if result.error else ""
        print(f"ERROR: export failed: {message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

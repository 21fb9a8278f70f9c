"""CLI interface for dyntranslate using Typer."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from dyntranslate import __version__
from dyntranslate.backends.base import TranslationBackend
from dyntranslate.config import CoalescerConfig
from dyntranslate.reporting.report import CoalescerStats
from dyntranslate.translation.coalescer import TranslationCoalescer
from dyntranslate.translation.language import (
    SUPPORTED_LANGUAGES,
    language_name,
    normalize_language,
)

app = typer.Typer(
    name="dyntranslate",
    help="Batched, cached translation of UI strings through a remote provider.",
    add_completion=False,
)
console = Console()

_verbose = False
_quiet = False


def _print(msg: str, *, verbose_only: bool = False) -> None:
    """Print respecting --verbose/--quiet flags. Errors bypass --quiet."""
    if _quiet:
        return
    if verbose_only and not _verbose:
        return
    console.print(msg)


def _fail(msg: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {msg}")
    return typer.Exit(1)


def _configure_logging(verbose: bool, quiet: bool) -> None:
    """Route package logs through rich. Repeated invocations replace the handler."""
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    pkg_logger = logging.getLogger("dyntranslate")
    for handler in list(pkg_logger.handlers):
        if isinstance(handler, RichHandler):
            pkg_logger.removeHandler(handler)
    pkg_logger.addHandler(RichHandler(console=console, show_path=False))
    pkg_logger.setLevel(level)


def _create_backend(
    backend_name: str,
    *,
    endpoint: str | None = None,
    api_key: str | None = None,
    timeout: float | None = None,
    use_dummy: bool = False,
) -> tuple[TranslationBackend, str]:
    """Create a translation backend instance.

    Returns:
        Tuple of (backend_instance, backend_label_for_stats).
    """
    from dyntranslate.backends.dummy import DummyBackend

    if use_dummy:
        backend_name = "dummy"

    if backend_name == "dummy":
        return DummyBackend(), "dummy"
    elif backend_name == "deepl":
        if not api_key:
            raise _fail("DeepL API key required. Use --api-key or set DEEPL_API_KEY.")
        from dyntranslate.backends.deepl import DeepLBackend
        try:
            return DeepLBackend(api_key), "deepl"
        except ImportError as e:
            raise _fail(str(e)) from None
    elif backend_name == "http":
        if not endpoint:
            raise _fail(
                "Translation endpoint required. Use --endpoint or set DYNTRANSLATE_ENDPOINT."
            )
        from dyntranslate.backends.http import DEFAULT_TIMEOUT, HttpBackend
        return HttpBackend(
            endpoint, api_key=api_key, timeout=timeout or DEFAULT_TIMEOUT,
        ), f"http:{endpoint}"
    else:
        raise _fail(f"Unknown backend '{backend_name}'. Use http, deepl or dummy.")


def _build_config(
    *,
    lang: str,
    source: str | None,
    debounce_ms: float | None,
    endpoint: str | None,
    api_key: str | None,
) -> tuple[CoalescerConfig, str]:
    """Merge CLI options over DYNTRANSLATE_* environment settings."""
    try:
        config = CoalescerConfig.from_env()
        overrides: dict[str, object] = {}
        if source is not None:
            overrides["source_lang"] = normalize_language(source)
        if debounce_ms is not None:
            debounce = debounce_ms / 1000
            overrides["debounce_seconds"] = debounce
            overrides["max_wait_seconds"] = max(config.max_wait_seconds, debounce)
        if endpoint is not None:
            overrides["endpoint"] = endpoint
        if api_key is not None:
            overrides["api_key"] = api_key
        config = dataclasses.replace(config, **overrides)
        target = normalize_language(lang)
    except ValueError as e:
        raise _fail(str(e)) from None
    return config, target


def _print_summary(stats: CoalescerStats) -> None:
    summary = Table(title="Translation Summary")
    summary.add_column("Metric", style="bold")
    summary.add_column("Count", justify="right")
    summary.add_row("Requests", str(stats.requests))
    summary.add_row("Cache hits", str(stats.cache_hits))
    summary.add_row("Provider calls", str(stats.provider_calls))
    summary.add_row("Translated", f"[green]{stats.items_translated}[/green]")
    summary.add_row("Missing", f"[yellow]{stats.items_missing}[/yellow]")
    summary.add_row("Failures", f"[red]{stats.absorbed_failures}[/red]")
    console.print(summary)
    if stats.last_error:
        _print(f"[dim]Last error: {stats.last_error}[/dim]")


def version_callback(value: bool) -> None:
    if value:
        console.print(f"dyntranslate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show extra info (batches, timing, stats).",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only show errors.",
    ),
) -> None:
    """dyntranslate: translate UI strings through a batched remote provider."""
    global _verbose, _quiet
    _verbose = verbose
    _quiet = quiet
    _configure_logging(verbose, quiet)


@app.command()
def translate(
    texts: list[str] = typer.Argument(
        ..., help="Texts to translate.",
    ),
    lang: str = typer.Option(
        "en", "--lang", "-l",
        help="Target language code (e.g. en, fr, pt-BR).",
    ),
    source: str | None = typer.Option(
        None, "--source", "-s",
        help="Source language code. Defaults to DYNTRANSLATE_SOURCE_LANG or es.",
    ),
    backend_name: str = typer.Option(
        "http", "--backend", "-b",
        help="Backend: http, deepl, dummy.",
    ),
    endpoint: str | None = typer.Option(
        None, "--endpoint", "-e",
        envvar="DYNTRANSLATE_ENDPOINT", help="translate-batch endpoint URL.",
    ),
    api_key: str | None = typer.Option(
        None, "--api-key", "-k",
        envvar=["DYNTRANSLATE_API_KEY", "DEEPL_API_KEY"],
        help="API key for the endpoint or DeepL.",
    ),
    debounce_ms: float | None = typer.Option(
        None, "--debounce-ms",
        help="Debounce window in milliseconds.",
    ),
    report: Path | None = typer.Option(
        None, "--report", "-r",
        help="Save stats to file (json/md/csv).",
    ),
    use_dummy: bool = typer.Option(
        False, "--dummy",
        help="Use dummy backend (shortcut for --backend dummy).",
    ),
) -> None:
    """Translate texts, coalescing them into as few requests as possible."""
    config, target = _build_config(
        lang=lang, source=source, debounce_ms=debounce_ms,
        endpoint=endpoint, api_key=api_key,
    )
    backend, label = _create_backend(
        backend_name, endpoint=config.endpoint, api_key=config.api_key,
        timeout=config.request_timeout, use_dummy=use_dummy,
    )
    stats = CoalescerStats(backend=label)

    async def run() -> list[str]:
        try:
            async with TranslationCoalescer(
                backend, config, target_lang=target, stats=stats,
            ) as coalescer:
                return await asyncio.gather(*(coalescer.translate(t) for t in texts))
        finally:
            await backend.close()

    results = asyncio.run(run())

    table = Table(title=f"{language_name(config.source_lang)} → {language_name(target)}")
    table.add_column("Source", style="dim")
    table.add_column("Translation")
    for original, translated in zip(texts, results, strict=True):
        table.add_row(escape(original), escape(translated))
    if not _quiet:
        console.print(table)

    if _verbose:
        _print_summary(stats)
    if report:
        from dyntranslate.reporting.formatters import save_report
        save_report(stats, report)
        _print(f"Report saved: [cyan]{report}[/cyan]")


@app.command()
def batch(
    file: Path = typer.Argument(
        ..., help="Text file with one string per line.",
    ),
    lang: str = typer.Option(
        "en", "--lang", "-l",
        help="Target language code (e.g. en, fr, pt-BR).",
    ),
    source: str | None = typer.Option(
        None, "--source", "-s",
        help="Source language code. Defaults to DYNTRANSLATE_SOURCE_LANG or es.",
    ),
    backend_name: str = typer.Option(
        "http", "--backend", "-b",
        help="Backend: http, deepl, dummy.",
    ),
    endpoint: str | None = typer.Option(
        None, "--endpoint", "-e",
        envvar="DYNTRANSLATE_ENDPOINT", help="translate-batch endpoint URL.",
    ),
    api_key: str | None = typer.Option(
        None, "--api-key", "-k",
        envvar=["DYNTRANSLATE_API_KEY", "DEEPL_API_KEY"],
        help="API key for the endpoint or DeepL.",
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o",
        help="Output file path. Prints to stdout when omitted.",
    ),
    report: Path | None = typer.Option(
        None, "--report", "-r",
        help="Save stats to file (json/md/csv).",
    ),
    use_dummy: bool = typer.Option(
        False, "--dummy",
        help="Use dummy backend (shortcut for --backend dummy).",
    ),
) -> None:
    """Translate every line of a file with a single bulk request."""
    if not file.exists():
        raise _fail(f"File not found: {file}")

    lines = file.read_text(encoding="utf-8").splitlines()
    config, target = _build_config(
        lang=lang, source=source, debounce_ms=None,
        endpoint=endpoint, api_key=api_key,
    )
    backend, label = _create_backend(
        backend_name, endpoint=config.endpoint, api_key=config.api_key,
        timeout=config.request_timeout, use_dummy=use_dummy,
    )
    stats = CoalescerStats(backend=label)

    async def run() -> list[str]:
        try:
            async with TranslationCoalescer(
                backend, config, target_lang=target, stats=stats,
            ) as coalescer:
                return await coalescer.translate_batch(lines)
        finally:
            await backend.close()

    results = asyncio.run(run())

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text("\n".join(results) + "\n", encoding="utf-8")
        _print(f"[green]Saved:[/green] {output} ({len(results)} lines)")
    else:
        for line in results:
            console.print(line, markup=False, highlight=False)

    if _verbose:
        _print_summary(stats)
    if report:
        from dyntranslate.reporting.formatters import save_report
        save_report(stats, report)
        _print(f"Report saved: [cyan]{report}[/cyan]")


@app.command()
def languages() -> None:
    """List the language codes known to the language selector."""
    table = Table(title="Languages")
    table.add_column("Code", style="bold")
    table.add_column("Name")
    for code, name in SUPPORTED_LANGUAGES.items():
        table.add_row(code, name)
    console.print(table)


if __name__ == "__main__":
    app()

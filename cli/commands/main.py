"""Main CLI interface using Typer."""

import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn, TimeElapsedColumn
from rich.table import Table

from llmtrans import __version__
from llmtrans.core.exceptions import LLMTranslateError
from llmtrans.core.models import TranslationRequest
from llmtrans.core.pipeline import TranslationPipeline
from llmtrans.translation.analysis import analysis_steps
from llmtrans.translation.glossary import load_glossary, merge_glossaries
from llmtrans.translation.registry import default_registry
from llmtrans.utils.batch import DEFAULT_EXTENSIONS, translate_directory, translate_document
from llmtrans.utils.config_loader import AppConfig, apply_overrides, load_config, save_config
from llmtrans.utils.frontmatter import extract_frontmatter
from llmtrans.utils.logger import setup_logger

import llmtrans.translation.backends  # noqa: F401  (registers built-in backends)

app = typer.Typer(
    name="llm-translate",
    help="Translate text and documents with LLM backends",
    add_completion=False
)

# translation output goes to stdout; everything else to stderr
console = Console(stderr=True)

PREVIEW_CHARS = 200


def _fail(message: str, suggestion: Optional[str] = None) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]")
    if suggestion:
        console.print(f"[dim]{escape(suggestion)}[/dim]")
    raise typer.Exit(1)


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


def _load(config_path: Optional[Path]) -> AppConfig:
    try:
        return load_config(str(config_path) if config_path else None)
    except FileNotFoundError as e:
        _fail(str(e))
    except LLMTranslateError as e:
        _fail(f"failed to load config: {e}", e.suggestion)


def _read_input(input_file: Optional[Path]) -> str:
    if input_file is not None:
        if not input_file.exists():
            _fail(f"Input file not found: {input_file}")
        return input_file.read_text(encoding="utf-8")

    if sys.stdin.isatty():
        _fail("no input provided. Use -i <file>, -d <dir> or pipe text to stdin")
    return sys.stdin.read()


@app.command()
def translate(
    input_file: Optional[Path] = typer.Option(None, "-i", "--input", help="Input file (default: stdin)"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Output file (default: stdout)"),
    input_dir: Optional[Path] = typer.Option(None, "-d", "--dir", help="Input directory for recursive translation"),
    extensions: str = typer.Option(DEFAULT_EXTENSIONS, "--ext", help="File extensions to translate (comma-separated)"),
    suffix: str = typer.Option("", "--suffix", help="Output file suffix (e.g., _ru)"),
    prefix: str = typer.Option("", "--prefix", help="Output file prefix (e.g., ru_)"),
    source_lang: str = typer.Option("auto", "-f", "--from", help="Source language"),
    target_lang: Optional[str] = typer.Option(None, "-t", "--to", help="Target language (default from config)"),
    backend: Optional[str] = typer.Option(None, "-p", "--provider", help="LLM provider"),
    model: Optional[str] = typer.Option(None, "-m", "--model", help="Model to use"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file path"),
    api_key: Optional[str] = typer.Option(None, "-k", "--api-key", help="API key (overrides config)"),
    base_url: Optional[str] = typer.Option(None, "-u", "--base-url", help="Base URL for API (executable path for CLI providers)"),
    temperature: Optional[float] = typer.Option(None, "--temperature", help="Generation temperature"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", help="Maximum tokens in response"),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Request timeout in seconds"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Chunk size for long texts"),
    context: str = typer.Option("", "--context", help="Additional context for translation"),
    style: Optional[str] = typer.Option(None, "--style", help="Translation style: formal, informal, technical, literary"),
    glossary_file: Optional[Path] = typer.Option(None, "-g", "--glossary", help="Glossary file (YAML or JSON)"),
    preserve_format: bool = typer.Option(False, "--preserve-format", help="Preserve formatting (markdown, html)"),
    strong: bool = typer.Option(False, "-s", "--strong", help="Check for absence of source language in translation"),
    strong_retries: Optional[int] = typer.Option(None, "--strong-retries", help="Number of retries for strong mode"),
    proxy: Optional[str] = typer.Option(None, "-x", "--proxy", help="Proxy server URL"),
    proxy_auth: Optional[str] = typer.Option(None, "--proxy-auth", help="Proxy authentication (user:pass)"),
    no_proxy: bool = typer.Option(False, "--no-proxy", help="Ignore proxy from config and environment"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Quiet mode (only result)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show request without sending"),
    sentiment: bool = typer.Option(False, "--sentiment", help="Analyze sentiment of translated text"),
    tags: Optional[int] = typer.Option(None, "--tags", help="Extract N tags from translated text (0 to disable)"),
    classify: bool = typer.Option(False, "--classify", help="Classify text by topics, scope, and type"),
    emotions: bool = typer.Option(False, "--emotions", help="Analyze emotions (fear, anger, hope, uncertainty, optimism, panic)"),
    factuality: bool = typer.Option(False, "--factuality", help="Check factuality (confirmed, rumors, forecasts, unsourced)"),
):
    """Translate text from a file, a directory or stdin."""

    setup_logger(level="DEBUG" if verbose else "ERROR" if quiet else "WARNING")

    config = _load(config_path)
    try:
        config = apply_overrides(
            config,
            backend=backend,
            model=model,
            api_key=api_key,
            base_url=base_url,
            proxy_url=proxy,
            proxy_auth=proxy_auth,
            no_proxy=no_proxy,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            chunk_size=chunk_size,
            preserve_format=preserve_format or None,
            sentiment=sentiment or None,
            tags_count=tags,
            classify=classify or None,
            emotions=emotions or None,
            factuality=factuality or None,
        )
        glossary = merge_glossaries(config.glossary, load_glossary(glossary_file) if glossary_file else ())
    except LLMTranslateError as e:
        _fail(str(e), e.suggestion)

    settings = config.settings
    request = TranslationRequest(
        text="",
        source_lang=source_lang,
        target_lang=target_lang or config.default_target_language,
        style=style,
        context=context,
        glossary=glossary,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        preserve_format=settings.preserve_format,
        strong_mode=strong or config.strong_validation.enabled,
        strong_retries=strong_retries if strong_retries is not None else config.strong_validation.max_retries,
    )
    backend_config = config.backend_config()

    if input_dir is not None:
        if not input_dir.is_dir():
            _fail(f"Input directory not found: {input_dir}")
        if dry_run:
            _show_dry_run(config, request, f"directory {input_dir} ({extensions})")
            return
        _translate_directory(config, request, input_dir, extensions, suffix, prefix, quiet)
        return

    text = _read_input(input_file)
    if not text:
        _fail("input is empty")

    frontmatter, body = extract_frontmatter(text)
    if verbose:
        console.print(f"Provider: {config.default_backend}, Model: {backend_config.model or 'default'}")
        console.print(f"Source language: {request.source_lang}, Target language: {request.target_lang}")
        console.print(f"Input size: {len(body)} characters")
        if frontmatter:
            console.print("Frontmatter detected and will be preserved")

    if dry_run:
        _show_dry_run(config, request, _truncate(body, PREVIEW_CHARS))
        return

    try:
        if output is not None and not quiet:
            with _progress() as progress:
                task = progress.add_task("[cyan]Translating...", total=100)

                def progress_callback(pct: float, message: str):
                    progress.update(task, completed=int(pct * 100), description=f"[cyan]{message}")

                pipeline = TranslationPipeline(config, progress_callback=progress_callback)
                translated, result = translate_document(pipeline, text, request)
                progress.update(task, completed=100, description="[green]✓ Translation complete")
        else:
            pipeline = TranslationPipeline(config)
            translated, result = translate_document(pipeline, text, request)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)
    except LLMTranslateError as e:
        _fail(f"translation failed: {e}", e.suggestion)
    except ValueError as e:
        _fail(str(e))

    if verbose:
        console.print(f"Translation complete. Tokens used: {result.tokens_used}")
        if result.detected_lang:
            console.print(f"Detected language: {result.detected_lang}")
        if result.analysis:
            console.print(f"Analysis fields: {', '.join(result.analysis)}")

    if output is not None:
        output.write_text(translated, encoding="utf-8")
        if not quiet:
            console.print(f"[green]Output: {output}[/green]")
    else:
        sys.stdout.write(translated)
        if not translated.endswith("\n"):
            sys.stdout.write("\n")


def _progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(bar_width=30),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False
    )


def _show_dry_run(config: AppConfig, request: TranslationRequest, preview: str) -> None:
    backend_config = config.backend_config()
    proxy = config.effective_proxy()

    table = Table(title="Dry run: request configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Provider", config.default_backend)
    table.add_row("Model", backend_config.model or "default")
    table.add_row("Source -> Target", f"{request.source_lang} -> {request.target_lang}")
    table.add_row("Temperature", f"{request.temperature:.2f}")
    table.add_row("Max tokens", str(request.max_tokens))
    table.add_row("Chunk size", str(config.settings.chunk_size))
    table.add_row("Strong mode", f"{request.strong_mode} (retries: {request.strong_retries})")
    table.add_row("Glossary terms", str(len(request.glossary)))
    table.add_row("Analysis", ", ".join(step.name for step in analysis_steps(config.settings)) or "none")
    table.add_row("Proxy", proxy.url or "none")
    table.add_row("Input", preview)
    console.print(table)


def _translate_directory(
    config: AppConfig,
    request: TranslationRequest,
    input_dir: Path,
    extensions: str,
    suffix: str,
    prefix: str,
    quiet: bool
) -> None:
    def on_file(index: int, total: int, source: Path, target: Path):
        if not quiet:
            console.print(f"[{index}/{total}] {source.name} -> {target.name}")

    pipeline = TranslationPipeline(config)
    try:
        report = translate_directory(
            pipeline, input_dir, request,
            extensions=extensions, suffix=suffix, prefix=prefix, on_file=on_file
        )
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)
    except (LLMTranslateError, ValueError) as e:
        _fail(str(e))

    for path, error in report.failed:
        console.print(f"[red]✗ {path}: {escape(error)}[/red]")

    if not quiet:
        if not report.translated and not report.failed:
            console.print("All files already translated")
        else:
            console.print(
                f"\n[bold green]Translation complete![/bold green] "
                f"{len(report.translated)} translated, {len(report.failed)} failed, "
                f"{report.skipped} skipped, {report.tokens_used} tokens"
            )

    if not report.ok:
        raise typer.Exit(1)


@app.command()
def backends(config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file path")):
    """List registered translation backends and whether they are configured."""

    config = _load(config_path)

    table = Table(title="Available Translation Backends", header_style="bold cyan")
    table.add_column("Backend", style="cyan")
    table.add_column("Model")
    table.add_column("Status")

    for name in default_registry.list_names():
        try:
            info = default_registry.create(name, config.backend_config(name)).get_info()
        except LLMTranslateError as e:
            table.add_row(name, "-", f"[red]✗ Error: {e}[/red]")
            continue
        status = "[green]✓ Available[/green]" if info["available"] else "[yellow]✗ Not configured[/yellow]"
        marker = " (default)" if name == config.default_backend else ""
        table.add_row(name + marker, info["model"] or "-", status)

    console.print(table)


@app.command()
def config(
    config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="Config file path"),
    init: Optional[Path] = typer.Option(None, "--init", help="Write a default config file to this path"),
):
    """Show the effective configuration, or write a default one."""

    if init is not None:
        if init.exists():
            _fail(f"Config file already exists: {init}")
        save_config(AppConfig(), str(init))
        console.print(f"[green]✓ Config written to {init}[/green]")
        return

    import yaml

    data = _load(config_path).to_dict()
    proxies = [data["proxy"]]
    for backend_data in data["providers"].values():
        if backend_data.get("api_key"):
            backend_data["api_key"] = "***"
        proxies.append(backend_data["proxy"])
    for proxy_data in proxies:
        if proxy_data.get("password"):
            proxy_data["password"] = "***"
    sys.stdout.write(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))


@app.command()
def version():
    """Show version information."""
    typer.echo(f"llm-translate version {__version__}")


def cli():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    cli()

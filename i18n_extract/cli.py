"""
Command-line interface for i18n-extract.

Provides commands for:
- Extracting literals from a source tree and rewriting it
- Re-keying an existing locale file with a naming backend
- Managing naming-service API keys
- Writing a starter config file
- System information

Usage:
    i18n-extract extract --input src --locale locales/zh-CN.json
    i18n-extract extract --naming openai --dry-run
    i18n-extract optimize-keys --locale locales/zh-CN.json
    i18n-extract keys set openai
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from i18n_extract import __version__
from i18n_extract.config import (
    SUPPORTED_EXTENSIONS,
    ExtractConfig,
    NamingConfig,
    load_config,
)
from i18n_extract.errors import NamingBatchFailure
from i18n_extract.pipeline import ExtractionPipeline, PipelineResult

app = typer.Typer(
    name="i18n-extract",
    help="i18n-extract: move hard-coded UI strings into translation calls and a locale file",
    add_completion=False,
)
console = Console()

DEFAULT_CONFIG_FILE = "i18n.config.json"


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def version_callback(value: bool):
    if value:
        console.print(f"i18n-extract v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """i18n-extract: literal extraction and key management."""
    pass


def _load_config_or_exit(config_file: Optional[Path]) -> ExtractConfig:
    path = config_file
    if path is None and Path(DEFAULT_CONFIG_FILE).exists():
        path = Path(DEFAULT_CONFIG_FILE)
    if path is None:
        return ExtractConfig()
    try:
        config = load_config(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)
    console.print(f"[dim]Using config {path}[/]")
    return config


def _print_summary(result: PipelineResult, dry_run: bool) -> None:
    table = Table(title="Extraction Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    for key, value in result.stats.items():
        table.add_row(key.replace("_", " ").title(), str(value))
    table.add_row("Written Files", "0 (dry run)" if dry_run else str(len(result.written_files)))
    table.add_row("Skipped Files", str(len(result.skipped_files)))
    table.add_row("Write Errors", str(len(result.write_errors)))
    table.add_row("Naming Failures", str(len(result.naming_failures)))
    table.add_row("Key Collisions", str(len(result.collisions)))
    console.print(table)

    if result.skipped_files:
        console.print("\n[yellow]Skipped files:[/]")
        for path, reason in result.skipped_files:
            console.print(f"  - {path}: {reason}")
    if result.write_errors:
        console.print("\n[red]Write errors:[/]")
        for path, reason in result.write_errors:
            console.print(f"  - {path}: {reason}")
    if result.naming_failures:
        console.print("\n[yellow]Literals that got a fallback key:[/]")
        for literal in result.naming_failures[:20]:
            console.print(f"  - {literal}")
        if len(result.naming_failures) > 20:
            console.print(f"  ... and {len(result.naming_failures) - 20} more")
    if result.collisions:
        console.print("\n[yellow]Key collisions:[/]")
        for collision in result.collisions[:20]:
            console.print(
                f"  - {collision.requested_key} -> {collision.resolved_key} "
                f"({collision.new_text!r} vs {collision.existing_text!r})"
            )


@app.command()
def extract(
    input_path: Optional[Path] = typer.Option(
        None, "--input", "-i",
        help="Source file or directory (default: config input, 'src')",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o",
        help="Write rewritten files here instead of in place",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c",
        help=f"JSON config file (default: ./{DEFAULT_CONFIG_FILE} if present)",
    ),
    locale: Optional[Path] = typer.Option(
        None, "--locale", "-l",
        help="Locale file to write (default: ./locales/zh-CN.json)",
    ),
    naming: Optional[str] = typer.Option(
        None, "--naming", "-n",
        help="Key naming backend (none, identity, context, openai, deepseek)",
    ),
    model: Optional[str] = typer.Option(
        None, "--model", "-m",
        help="Model name for LLM naming backends",
    ),
    concurrent: bool = typer.Option(
        False, "--concurrent",
        help="Name literals one by one on a thread pool instead of one batch",
    ),
    incremental: Optional[bool] = typer.Option(
        None, "--incremental/--no-incremental",
        help="Merge with the existing locale file",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run",
        help="Report what would change without writing anything",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-V",
        help="Debug logging",
    ),
):
    """Extract literals, rewrite sources and save the locale file.

    Examples:
        i18n-extract extract -i src
        i18n-extract extract -i src -o dist --no-incremental
        i18n-extract extract --naming openai --model gpt-4o-mini
    """
    setup_logging(verbose)
    config = _load_config_or_exit(config_file)

    if input_path is not None:
        config.input = str(input_path)
    if output is not None:
        config.output = str(output)
    if locale is not None:
        config.locale_path = str(locale)
    if incremental is not None:
        config.incremental = incremental
    if naming is not None:
        config.naming = NamingConfig(
            backend=naming,
            model=model or config.naming.model,
            base_url=config.naming.base_url,
            api_key=config.naming.api_key,
            concurrent=concurrent or config.naming.concurrent,
            max_workers=config.naming.max_workers,
        )
    elif model is not None:
        config.naming.model = model

    if not Path(config.input).exists():
        console.print(f"[red]Error:[/] Input not found: {config.input}")
        raise typer.Exit(1)

    try:
        pipeline = ExtractionPipeline(config, dry_run=dry_run)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    files = pipeline.discover()
    console.print(f"[bold]Found {len(files)} source file(s) in {config.input}[/]")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Extracting...", total=100)

        def update_progress(msg: str, pct: float):
            progress.update(task, description=msg, completed=int(pct * 100))

        pipeline.progress_callback = update_progress
        try:
            result = pipeline.run(files)
        except NamingBatchFailure as e:
            progress.stop()
            console.print(f"[red]Key naming failed:[/] {e}")
            console.print("[dim]No source file was written.[/]")
            raise typer.Exit(1)

        progress.update(task, description="[green]Complete!", completed=100)

    _print_summary(result, dry_run)
    if result.locale_file:
        console.print(f"\n[green]Saved locale:[/] {result.locale_file}")
    if result.write_errors:
        raise typer.Exit(1)


@app.command("optimize-keys")
def optimize_keys_command(
    locale: Path = typer.Option(
        Path("locales/zh-CN.json"), "--locale", "-l",
        help="Locale file to re-key",
    ),
    naming: str = typer.Option(
        "openai", "--naming", "-n",
        help="Key naming backend (context, openai, deepseek)",
    ),
    model: Optional[str] = typer.Option(
        None, "--model", "-m",
        help="Model name for LLM naming backends",
    ),
    concurrent: bool = typer.Option(
        True, "--concurrent/--batch",
        help="Name keys one by one on a thread pool, or in one batch",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o",
        help="Where to save the optimized locale (default: overwrite)",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run",
        help="Show key changes without writing files",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-V",
        help="Debug logging",
    ),
):
    """Give every key of an existing locale file a semantic name.

    Writes the re-keyed locale and a <name>.key-mappings.json file with
    the old -> new key map.
    """
    from i18n_extract.locale import load_locale
    from i18n_extract.naming.base import create_namer
    from i18n_extract.optimize import optimize_keys, save_optimized

    setup_logging(verbose)
    if not locale.exists():
        console.print(f"[red]Error:[/] Locale file not found: {locale}")
        raise typer.Exit(1)

    try:
        key_map = load_locale(locale)
        namer = create_namer(NamingConfig(backend=naming, model=model, concurrent=concurrent))
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)
    if namer is None:
        console.print("[red]Error:[/] optimize-keys needs a naming backend (context, openai, deepseek)")
        raise typer.Exit(1)

    console.print(f"[bold]Optimizing {len(key_map)} key(s) from {locale}[/]")
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Naming keys...", total=max(len(key_map), 1))
            result = optimize_keys(
                key_map,
                namer,
                progress=lambda done, total: progress.update(task, completed=done, total=total),
            )
    except NamingBatchFailure as e:
        console.print(f"[red]Key naming failed:[/] {e}")
        raise typer.Exit(1)
    finally:
        namer.close()

    changed = result.changed_keys
    console.print(f"\n[green]Optimization complete![/] {len(changed)} key(s) changed.")
    if changed:
        table = Table(title="Key Changes")
        table.add_column("Old Key", style="red")
        table.add_column("New Key", style="green")
        for old_key in changed[:10]:
            table.add_row(old_key, result.mappings[old_key])
        console.print(table)
        if len(changed) > 10:
            console.print(f"  ... and {len(changed) - 10} more")
    if result.failures:
        console.print(f"[yellow]{len(result.failures)} key(s) kept their old name[/]")

    if dry_run:
        console.print("\n[dim]Dry run mode - no files were modified[/]")
        return

    locale_file, mappings_file = save_optimized(result, output or locale)
    console.print(f"[green]Saved locale:[/] {locale_file}")
    if mappings_file:
        console.print(f"[green]Saved key mappings:[/] {mappings_file}")


@app.command()
def init(
    path: Path = typer.Argument(
        Path(DEFAULT_CONFIG_FILE),
        help="Config file to create",
    ),
    force: bool = typer.Option(
        False, "--force", "-f",
        help="Overwrite an existing file",
    ),
):
    """Write a starter config file."""
    if path.exists() and not force:
        console.print(f"[red]Error:[/] {path} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    starter = {
        "input": "src",
        "output": "",
        "exclude": ["**/node_modules/**"],
        "localePath": "./locales/zh-CN.json",
        "localeFileType": "json",
        "incremental": True,
        "rules": {
            "js": {"caller": "", "functionName": "t", "importDeclaration": 'import { t } from "i18n"'},
            "ts": {"caller": "", "functionName": "t", "importDeclaration": 'import { t } from "i18n"'},
            "jsx": {"caller": "", "functionName": "t", "importDeclaration": 'import { t } from "i18n"', "functionSnippets": ""},
            "tsx": {"caller": "", "functionName": "t", "importDeclaration": 'import { t } from "i18n"', "functionSnippets": ""},
            "vue": {
                "caller": "this",
                "functionNameInTemplate": "$t",
                "functionNameInScript": "$t",
                "importDeclaration": "",
                "tagOrder": ["template", "script", "style"],
            },
        },
        "globalRule": {"ignoreMethods": []},
        "naming": {"backend": "none"},
        "existedConfig": {"existedKeys": [], "getExistedUrl": "", "mapFieldToKey": "key"},
    }
    path.write_text(json.dumps(starter, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    console.print(f"[green]✓[/] Wrote {path}")


@app.command()
def info():
    """Show supported file types and naming backends."""
    from i18n_extract.credentials import KeyManager

    console.print(f"[bold]i18n-extract v{__version__}[/]\n")

    console.print(f"[bold]Supported extensions:[/] {', '.join(SUPPORTED_EXTENSIONS)}\n")

    km = KeyManager()
    table = Table(title="Key Naming Backends")
    table.add_column("Backend", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Notes")

    table.add_row("none", "✓ Available", "Literal text is the key (default)")
    table.add_row("context", "✓ Available", "Offline {module}_{phrase} heuristics")

    try:
        import openai  # noqa: F401
        has_openai = km.get_key("openai") is not None
        has_deepseek = km.get_key("deepseek") is not None
        table.add_row("openai", "✓ Available" if has_openai else "⚠ No API key", "Semantic snake_case keys")
        table.add_row("deepseek", "✓ Available" if has_deepseek else "⚠ No API key", "Uses OpenAI client")
    except ImportError:
        table.add_row("openai", "✗ Not installed", "pip install openai")
        table.add_row("deepseek", "✗ Not installed", "pip install openai")

    console.print(table)


@app.command()
def keys(
    action: str = typer.Argument(..., help="Action: list, set, delete, status"),
    service: Optional[str] = typer.Argument(None, help="Service name (openai, deepseek)"),
):
    """Manage naming-service API keys.

    Examples:
        i18n-extract keys list
        i18n-extract keys set openai
        i18n-extract keys status deepseek
        i18n-extract keys delete openai
    """
    from i18n_extract.credentials import SERVICES, KeyManager, env_var_for

    km = KeyManager()

    if action == "list":
        table = Table(title="API Keys Status")
        table.add_column("Service", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Source", style="yellow")
        table.add_column("Value", style="dim")

        for key_info in km.list_keys():
            status = "✓ Set" if key_info.is_set else "✗ Not set"
            status_color = "green" if key_info.is_set else "red"
            table.add_row(
                key_info.service,
                f"[{status_color}]{status}[/]",
                key_info.source,
                key_info.masked_value if key_info.is_set else "-",
            )

        console.print(table)
        console.print("\n[dim]Priority: env > keychain > config file[/]")
        return

    if not service:
        console.print("[red]Error:[/] Service name required")
        console.print(f"Available services: {', '.join(SERVICES)}")
        raise typer.Exit(1)

    if action == "set":
        from getpass import getpass
        key = getpass(f"Enter API key for {service}: ")

        if not key:
            console.print("[red]Error:[/] Key cannot be empty")
            raise typer.Exit(1)

        storage = km.set_key(service, key)
        console.print(f"[green]✓[/] API key for {service} saved to {storage}")
        if storage == "config":
            console.print(f"[yellow]Note:[/] Key stored in local file ({km.CONFIG_FILE})")

    elif action == "status":
        key_info = km.get_key_info(service)
        if key_info.is_set:
            console.print(f"[green]✓[/] API key for {service} is set")
            console.print(f"    Source: {key_info.source}")
            console.print(f"    Value: {key_info.masked_value}")
        else:
            console.print(f"[red]✗[/] No API key found for {service}")
            console.print("\nTo set the key:")
            console.print(f"  Option 1: [cyan]i18n-extract keys set {service}[/]")
            console.print(f"  Option 2: [cyan]export {env_var_for(service)}='your-key-here'[/]")

    elif action == "delete":
        if km.delete_key(service):
            console.print(f"[green]✓[/] API key for {service} deleted")
        else:
            console.print(f"[yellow]⚠[/] No key found to delete for {service}")

    else:
        console.print(f"[red]Error:[/] Unknown action '{action}'")
        console.print("Available actions: list, set, delete, status")
        raise typer.Exit(1)

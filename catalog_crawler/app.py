"""Typer CLI entrypoint for catalog-crawler."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, GlobalConfig, SearchQuery
from .dataset import CatalogDataset
from .engine import CrawlResult
from .exceptions import CrawlError, ValidationError
from .logging_conf import available_crawl_logs, configure_logging, default_log_dir, tail_log
from .orchestrator import CrawlService
from .ui import RichProgressSink

KEYS_ENV_VARS = ("CATALOG_API_KEYS", "NUMISTA_API_KEY")

app = typer.Typer(
    help="Exhaustive, rate-limit aware crawler for paginated catalog APIs.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
dataset_app = typer.Typer(name="dataset", help="Query exported datasets.", no_args_is_help=True)
config_app = typer.Typer(name="config", help="Inspect or edit global configuration.", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Inspect log files.", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    service: CrawlService
    verbose: bool = False


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    service = CrawlService(repository.load_global_config())
    return AppState(repository=repository, service=service, verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def resolve_credentials(keys: Optional[str], keys_file: Optional[Path]) -> str:
    """Collect raw credential text from option, file, then environment."""

    parts: list[str] = []
    if keys:
        parts.append(keys)
    if keys_file is not None:
        if not keys_file.exists():
            raise typer.BadParameter(f"Keys file not found: {keys_file}")
        parts.append(keys_file.read_text(encoding="utf-8"))
    if not parts:
        for name in KEYS_ENV_VARS:
            value = os.environ.get(name)
            if value and value.strip():
                parts.append(value)
                break
    return "\n".join(parts)


def _default_output(state: AppState, stem: str, fmt: str) -> Path:
    run_tag = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    extension = "db" if fmt == "sqlite" else fmt
    return state.repository.locator.outputs_dir / f"{stem}-{run_tag}.{extension}"


def _render_summary(result: CrawlResult, by_issuer: bool) -> Table:
    table = Table(title="Crawl summary", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    if by_issuer:
        table.add_row("Issuers", str(result.issuer_count or 0))
        table.add_row("Declared (sum over issuers)", str(result.total_declared_count))
    else:
        table.add_row("Declared", str(result.total_declared_count))
    table.add_row("Pages", str(len(result.raw_pages)))
    table.add_row("Unique records", str(result.unique_count))
    table.add_row("Completed at", result.completed_at.isoformat(timespec="seconds"))
    return table


app.add_typer(dataset_app, name="dataset")
app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("crawl", help="Fetch every page of a search, or of every issuer with --by-issuer.")
def crawl(
    ctx: typer.Context,
    keys: Optional[str] = typer.Option(None, "--keys", help="API keys separated by commas or newlines."),
    keys_file: Optional[Path] = typer.Option(None, "--keys-file", help="File with one API key per line."),
    by_issuer: bool = typer.Option(False, "--by-issuer", help="Crawl issuer by issuer.", is_flag=True),
    lang: str = typer.Option("en", "--lang"),
    category: Optional[str] = typer.Option(None, "--category"),
    q: Optional[str] = typer.Option(None, "--q", help="Free-text search."),
    issuer: Optional[str] = typer.Option(None, "--issuer"),
    catalogue: Optional[str] = typer.Option(None, "--catalogue"),
    number: Optional[str] = typer.Option(None, "--number"),
    ruler: Optional[str] = typer.Option(None, "--ruler"),
    material: Optional[str] = typer.Option(None, "--material"),
    year: Optional[str] = typer.Option(None, "--year"),
    date: Optional[str] = typer.Option(None, "--date"),
    size: Optional[str] = typer.Option(None, "--size"),
    weight: Optional[str] = typer.Option(None, "--weight"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Export file path."),
    fmt: Optional[str] = typer.Option(None, "--format", help="json, jsonl, csv or sqlite."),
    raw_output: Optional[Path] = typer.Option(None, "--raw-output", help="Also write raw page payloads."),
    quiet: bool = typer.Option(False, "--quiet", help="Only print the export path.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    config = state.service.config
    fmt = fmt or config.export.format
    if fmt not in ("json", "jsonl", "csv", "sqlite"):
        raise typer.BadParameter(f"Unsupported format: {fmt}", param_hint="--format")

    raw_keys = resolve_credentials(keys, keys_file)
    query = SearchQuery(
        lang=lang,
        category=category,
        q=q,
        issuer=issuer,
        catalogue=catalogue,
        number=number,
        ruler=ruler,
        material=material,
        year=year,
        date=date,
        size=size,
        weight=weight,
    )
    stem = "issuers" if by_issuer else "types"
    sink = RichProgressSink(enabled=config.enable_progress_bar and not quiet, console=console)
    try:
        with sink:
            result = state.service.crawl(raw_keys, query, by_issuer=by_issuer, sink=sink)
    except ValidationError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=2)
    except CrawlError as exc:
        if sink.last_message:
            console.print(sink.last_message, style="yellow")
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)

    output = output or _default_output(state, stem, fmt)
    written = state.service.export(result, output, fmt)
    if raw_output is None and config.export.include_raw:
        raw_output = output.with_name(f"{output.stem}-raw.json")
    if raw_output is not None:
        state.service.export_raw(result, raw_output)

    if quiet:
        console.print(str(output))
        return
    console.print(result.status_message, style="green")
    console.print(_render_summary(result, by_issuer))
    if sink.rotations or sink.retry_waits:
        console.print(
            f"Retried {sink.retry_waits} time(s), rotated keys {sink.rotations} time(s).",
            style="dim",
        )
    console.print(f"Wrote {written} records to {output}", style="cyan")
    if raw_output is not None:
        console.print(f"Raw pages written to {raw_output}", style="dim")


@dataset_app.command("query", help="Filter and paginate an exported JSON dataset.")
def dataset_query(
    path: Path = typer.Argument(..., help="Exported JSON file (flat list of records)."),
    search: Optional[str] = typer.Option(None, "--search"),
    issuer: Optional[str] = typer.Option(None, "--issuer"),
    issued_after: Optional[str] = typer.Option(None, "--issued-after"),
    issued_before: Optional[str] = typer.Option(None, "--issued-before"),
    category: Optional[str] = typer.Option(None, "--category"),
    page: int = typer.Option(1, "--page"),
    page_size: Optional[int] = typer.Option(None, "--page-size"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw page as JSON.", is_flag=True),
) -> None:
    if not path.exists():
        console.print(f"Dataset not found: {path}", style="red")
        raise typer.Exit(code=1)
    dataset = CatalogDataset.load(path)
    result = dataset.query(
        search=search,
        issuer=issuer,
        issued_after=issued_after,
        issued_before=issued_before,
        category=category,
        page=page,
        page_size=page_size,
    )
    if as_json:
        console.print_json(json.dumps(result.to_dict(), ensure_ascii=False))
        return
    table = Table(
        title=f"Page {result.page}/{result.total_pages} · {result.total} matches",
        box=box.SIMPLE_HEAD,
    )
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Issuer", style="magenta")
    table.add_column("Years", style="green")
    for item in result.items:
        years = "-".join(
            str(item[key]) for key in ("minYear", "maxYear") if item.get(key) is not None
        )
        table.add_row(str(item.get("id")), item["title"], item.get("issuerName") or "", years)
    console.print(table)


@config_app.command("show", help="Print the effective global configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    payload = state.repository.load_global_config().model_dump(mode="json")
    console.print(f"# {state.repository.locator.global_config_path()}", style="dim")
    console.print(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False))


@config_app.command("set-api", help="Update API endpoint settings.")
def config_set_api(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(None, "--base-url"),
    key_header: Optional[str] = typer.Option(None, "--key-header"),
    page_size: Optional[int] = typer.Option(None, "--page-size"),
    retry_client_errors: Optional[bool] = typer.Option(
        None, "--retry-client-errors/--no-retry-client-errors"
    ),
) -> None:
    state = _get_state(ctx)
    current = state.repository.load_global_config()
    payload = current.model_dump(mode="json")
    if base_url is not None:
        payload["api"]["base_url"] = base_url
    if key_header is not None:
        payload["api"]["api_key_header"] = key_header
    if page_size is not None:
        payload["api"]["page_size"] = page_size
    if retry_client_errors is not None:
        payload["retry"]["retry_client_errors"] = retry_client_errors
    try:
        updated = GlobalConfig.model_validate(payload)
    except ValueError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=2)
    state.repository.save_global_config(updated)
    console.print("Configuration saved.", style="green")


@log_app.command("list", help="List per-crawl log files.")
def log_list() -> None:
    logs = list(available_crawl_logs())
    if not logs:
        console.print("No crawl logs yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the last lines of a log.")
def log_show(
    name: Optional[str] = typer.Option(None, "--crawl", help="Crawl log name (default: global log)."),
    tail: int = typer.Option(100, "--tail", help="Number of lines."),
) -> None:
    base_dir = default_log_dir()
    path = base_dir / "crawls" / f"{name}.log" if name else base_dir / "crawler.log"
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log lines yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()

"""wbscalc CLI - budget workbook import and WBS synthesis.

Commands:
- parse: Parse the sheets of a budget workbook and report what was found
- build: Run the full import and show the rolled-up WBS tree
- init-db: Initialize database schema
"""

from __future__ import annotations

import asyncio
from decimal import Decimal, InvalidOperation
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from wbscalc.config import ImportConfig, get_config
from wbscalc.core.logging import configure_logging
from wbscalc.errors import WBSImportError
from wbscalc.ingestion.workbook import load_workbook
from wbscalc.models import WBSNode
from wbscalc.pipeline.orchestrator import BudgetImportPipeline
from wbscalc.pipeline.types import ImportOutcome, ImportStatus

app = typer.Typer(
    name="wbscalc",
    help="wbscalc - Construction budget import and 5-level WBS synthesis",
    no_args_is_help=True,
)

console = Console()
logger = structlog.get_logger(__name__)

_STATUS_STYLES = {
    ImportStatus.SUCCESS: "green",
    ImportStatus.PARTIAL_SUCCESS: "yellow",
    ImportStatus.SKIPPED: "dim",
    ImportStatus.FAILED: "red",
}


@app.callback()
def _setup(
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for diagnostics on stderr"),
):
    configure_logging(log_level)


def _import_config(overrides: Path | None) -> ImportConfig:
    config = ImportConfig.from_env()
    if overrides is not None:
        config.load_overrides(overrides)
    return config


def _parse_total(value: str | None) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(value.replace(",", "").replace("$", ""))
    except InvalidOperation:
        raise typer.BadParameter(f"Not a number: {value}") from None


def _money(value: Decimal) -> str:
    return f"${value:,.2f}"


def _print_sheet_table(outcome_sheets) -> None:
    table = Table(title="Sheets")
    table.add_column("Sheet", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Allocations", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Duration", justify="right")

    for result in outcome_sheets.values():
        style = _STATUS_STYLES[result.status]
        table.add_row(
            result.sheet,
            f"[{style}]{result.status.value}[/{style}]",
            str(len(result.allocations)),
            str(result.skip_count),
            _money(result.total_cost),
            f"{result.duration_seconds:.2f}s",
        )

    console.print(table)
    for result in outcome_sheets.values():
        if result.status == ImportStatus.FAILED:
            console.print(f"  [red]✗[/red] {result.sheet}: {result.message}")


def _add_branch(parent: Tree, node: WBSNode, max_level: int) -> None:
    branch = parent.add(f"[bold]{node.code}[/bold] {node.description}  {_money(node.budget_total)}")
    if node.level < max_level:
        for child in node.children:
            _add_branch(branch, child, max_level)


def _print_tree(outcome: ImportOutcome, max_level: int) -> None:
    for root in outcome.roots:
        tree = Tree(f"[bold]{root.code}[/bold] {root.description}  {_money(root.budget_total)}")
        for child in root.children:
            _add_branch(tree, child, max_level)
        console.print(tree)


@app.command()
def parse(
    file: Path = typer.Argument(..., help="Budget workbook (.xlsx/.xlsm/.xls)"),
    overrides: Path | None = typer.Option(None, "--overrides", help="YAML rate/crew overrides"),
):
    """Parse every recognized sheet and report allocations and skipped rows."""
    try:
        workbook = load_workbook(file)
        sheets = BudgetImportPipeline(_import_config(overrides)).parse_sheets(workbook)
    except (FileNotFoundError, ValueError, WBSImportError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    _print_sheet_table(sheets)

    for result in sheets.values():
        counts = result.skip_counts()
        if counts:
            details = ", ".join(f"{reason}: {n}" for reason, n in sorted(counts.items()))
            console.print(f"  [dim]{result.sheet} skipped rows - {details}[/dim]")

    total = sum(len(r.allocations) for r in sheets.values())
    console.print(f"\n[bold green]✓[/bold green] {total} allocations parsed")


@app.command()
def build(
    file: Path = typer.Argument(..., help="Budget workbook (.xlsx/.xlsm/.xls)"),
    project_id: str | None = typer.Option(None, "--project", help="Project ID"),
    total: str | None = typer.Option(None, "--total", help="Independently known project total"),
    export: Path | None = typer.Option(None, "--export", help="Write the tree to this .xlsx file"),
    persist: bool = typer.Option(False, "--persist", help="Store the tree in the database"),
    max_level: int = typer.Option(3, "--depth", min=1, max=5, help="Deepest WBS level to print"),
    overrides: Path | None = typer.Option(None, "--overrides", help="YAML rate/crew overrides"),
):
    """Run the full import: parse, build the WBS, roll up and reconcile."""
    if persist and not project_id:
        console.print("[red]✗ --persist requires --project[/red]")
        raise typer.Exit(1)

    project_total = _parse_total(total)
    pipeline = None
    try:
        pipeline = BudgetImportPipeline(_import_config(overrides))
        outcome = pipeline.run(load_workbook(file), project_id=project_id, project_total=project_total)
    except (FileNotFoundError, ValueError, WBSImportError) as e:
        console.print(f"[red]✗ Import failed: {e}[/red]")
        raise typer.Exit(1)

    _print_sheet_table(outcome.sheets)
    console.print()
    _print_tree(outcome, max_level)

    report = outcome.reconciliation
    if report is not None:
        style = "green" if report.is_balanced else "yellow"
        console.print(f"\n[{style}]{report.message}[/{style}]")

    if outcome.warnings:
        console.print(f"\n[yellow]⚠[/yellow] {len(outcome.warnings)} warnings")
        for warning in outcome.warnings[:10]:  # Show first 10
            console.print(f"  {warning}", style="dim")

    if export is not None:
        from wbscalc.reporting.excel_export import export_tree_to_excel

        data = export_tree_to_excel(outcome.nodes, project_id, report)
        export.write_bytes(data.getvalue())
        console.print(f"[green]✓[/green] Exported {len(outcome.nodes)} nodes to {export}")

    if persist:
        from sqlalchemy.exc import SQLAlchemyError

        from wbscalc.db.connection import close_db
        from wbscalc.db.store import SqlAlchemyBudgetStore

        async def _persist():
            try:
                return await pipeline.persist(outcome, SqlAlchemyBudgetStore())
            finally:
                await close_db()

        try:
            summary = asyncio.run(_persist())
        except (KeyError, SQLAlchemyError, WBSImportError) as e:
            console.print(f"[red]✗ Persist failed: {e}[/red]")
            raise typer.Exit(1)
        console.print(
            f"[green]✓[/green] Stored {summary['node_count']} nodes "
            f"({summary['allocations_created']} new allocations, "
            f"{summary['allocations_updated']} updated)"
        )

    console.print(f"\n[bold green]✓[/bold green] {outcome.message}")


@app.command(name="init-db")
def init_db_cmd(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    from wbscalc.db.connection import close_db, init_db

    try:
        config = get_config()
    except (KeyError, ValueError) as e:
        console.print(f"[red]✗ {e.args[0]}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")
    if drop:
        console.print("[yellow]Dropping existing tables...[/yellow]")

    async def _init():
        try:
            await init_db(drop=drop)
        finally:
            await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()

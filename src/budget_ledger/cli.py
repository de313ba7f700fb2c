import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from budget_ledger.categorization import CategorizationEngine
from budget_ledger.categorization.categories import category_label
from budget_ledger.config.settings import ConfigLoader
from budget_ledger.database.connection import DatabaseConfig, DatabaseManager
from budget_ledger.domain.enums import TransactionStatus
from budget_ledger.logging_setup import configure_logging
from budget_ledger.parsers.bank_csv import BankCsvParser
from budget_ledger.parsers.factory import ParserFactory
from budget_ledger.repositories.sqlite_ledger_store import SQLiteLedgerStore
from budget_ledger.services.ledger_service import LedgerService

app = typer.Typer(
    name="budget-ledger",
    help="Reconcile bank exports into a monthly household budget",
    add_completion=False,
)

console = Console()

STATUS_STYLES = {
    TransactionStatus.GREEN: "green",
    TransactionStatus.YELLOW: "yellow",
    TransactionStatus.RED: "red",
}


class State:
    verbose: bool = False
    service: Optional[LedgerService] = None


state = State()


def parse_column_mapping(values: Optional[List[str]]) -> Dict[str, str]:
    """Turn repeated FIELD=HEADER options into a column mapping"""
    mapping: Dict[str, str] = {}
    for value in values or []:
        field_name, sep, header = value.partition("=")
        field_name, header = field_name.strip(), header.strip()
        if not sep or not header:
            raise typer.BadParameter(f"Expected FIELD=HEADER, got '{value}'")
        if field_name not in BankCsvParser.HEADER_KEYWORDS:
            fields = ", ".join(BankCsvParser.HEADER_KEYWORDS)
            raise typer.BadParameter(f"Unknown field '{field_name}', expected one of: {fields}")
        mapping[field_name] = header
    return mapping


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    )
):
    """
    Budget Ledger - Import bank exports, categorize, and project balances.
    """
    settings = ConfigLoader.load_settings()
    configure_logging(logging.INFO if verbose else settings["log_level"])

    if state.service is None:
        if not ParserFactory.is_loaded():
            ParserFactory.load_parsers_from_config()
        db_manager = DatabaseManager(DatabaseConfig(settings["database_path"]))
        db_manager.initialize()
        state.service = LedgerService(SQLiteLedgerStore(db_manager), payday=int(settings["payday"]))

    state.verbose = verbose


@app.command(name="import")
def import_statement(
    filepath: Path = typer.Argument(
        ...,
        help="Path to the bank export",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
    account_id: str = typer.Option(
        ...,
        "--account", "-a",
        help="Account the export belongs to",
    ),
    file_format: Optional[str] = typer.Option(
        None,
        "--format", "-f",
        help="Export format (semicolon, comma)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Preview without saving to database",
    ),
    column_map: Optional[List[str]] = typer.Option(
        None,
        "--map", "-m",
        help="Column mapping as FIELD=HEADER, repeatable (e.g. --map date=Bokföringsdag)",
    ),
):
    """
    Import a bank export and reconcile it with the stored ledger.

    Examples:
        budget-ledger import export.csv --account A1
        budget-ledger import export.csv -a A1 --format comma --dry-run
        budget-ledger import export.csv -a A1 --map description=Rubrik --map amount=Summa
    """
    column_mapping = parse_column_mapping(column_map)

    try:
        console.print(Panel.fit(
            f"[bold cyan]Import Configuration[/bold cyan]\n"
            f"File: {filepath}\n"
            f"Account: {account_id}\n"
            f"Format: {file_format or 'default'}\n"
            f"Mode: {'DRY RUN' if dry_run else 'LIVE'}",
            border_style="cyan"
        ))

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Reconciling transactions...", total=None)

            result = state.service.import_statement(
                filepath=filepath,
                account_id=account_id,
                file_format=file_format,
                dry_run=dry_run,
                column_mapping=column_mapping,
            )

            progress.update(task, completed=True)

        console.print(f"\n[bold]Read {result.total_parsed} rows[/bold]")
        if result.date_range:
            console.print(f"Date range: {result.date_range[0]} - {result.date_range[1]}")

        if result.imported:
            preview_table = Table(title="New transactions (first 10)")
            preview_table.add_column("Date", style="cyan")
            preview_table.add_column("Description", style="white")
            preview_table.add_column("Category", style="magenta")
            preview_table.add_column("Amount", justify="right")
            preview_table.add_column("Status", justify="center")

            for txn in result.imported[:10]:
                style = STATUS_STYLES[txn.status]
                amount_color = "green" if txn.amount >= 0 else "red"
                preview_table.add_row(
                    txn.date,
                    txn.description[:40],
                    category_label(txn.app_category_id, txn.app_sub_category_id),
                    f"[{amount_color}]{txn.amount:,.2f}[/{amount_color}]",
                    f"[{style}]{txn.status.value}[/{style}]",
                )

            console.print("\n")
            console.print(preview_table)

        for warning in result.warnings:
            console.print(f"[yellow]! {warning}[/yellow]")

        console.print("")
        verb = "Would import" if dry_run else "Imported"
        console.print(f"[bold green]✓ {verb} {result.new_transactions} new transactions[/bold green]")
        console.print(f"  Matched {result.matched} ({result.preserved_manual} manual edits kept)")
        if result.skipped_rows:
            console.print(f"[yellow]  Skipped {result.skipped_rows} unreadable rows[/yellow]")
        if result.dropped_manual:
            console.print(f"[red]  Removed {len(result.dropped_manual)} manually changed transactions[/red]")
        if dry_run:
            console.print("[yellow]DRY RUN - No changes made[/yellow]")
        elif state.verbose:
            console.print(f"[dim]→ Months written: {', '.join(result.touched_months)}[/dim]")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if state.verbose:
            console.print_exception()
        raise typer.Exit(code=1)


@app.command(name="prognosis")
def prognosis():
    """
    Recompute and show projected start and end balances per month.

    Examples:
        budget-ledger prognosis
    """
    try:
        report = state.service.recalculate_prognosis()
        rows = report.rows()

        if not rows:
            console.print(Panel(
                "[yellow]No months or accounts to project[/yellow]",
                title="Empty Prognosis",
                border_style="yellow"
            ))
            return

        table = Table(title="Balance Prognosis", show_header=True, padding=(0, 1))
        table.add_column("Month", style="cyan")
        table.add_column("Account", style="white")
        table.add_column("Start", justify="right")
        table.add_column("End", justify="right")

        for month_key, account, start, end in rows:
            end_color = "green" if end >= start else "red"
            table.add_row(month_key, account, f"{start:,.2f}", f"[{end_color}]{end:,.2f}[/{end_color}]")

        console.print(table)

        for month_key in report.failed_months:
            console.print(f"[red]✗ {month_key} could not be projected[/red]")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if state.verbose:
            console.print_exception()
        raise typer.Exit(code=1)


@app.command(name="range")
def month_range(
    month_key: str = typer.Argument(..., help="Budget month (YYYY-MM)"),
    payday: Optional[int] = typer.Option(
        None,
        "--payday", "-p",
        help="Payday override (1 = calendar month)",
        min=1,
        max=31,
    ),
    transactions: bool = typer.Option(
        False,
        "--transactions", "-t",
        help="List the transactions inside the range",
    ),
):
    """
    Show the date interval of a budget month.

    Examples:
        budget-ledger range 2024-11
        budget-ledger range 2024-11 --payday 1 --transactions
    """
    try:
        resolved = state.service.get_month_range(month_key, payday)
        console.print(Panel.fit(
            f"[bold]{resolved.month_key}[/bold]\n"
            f"Start: {resolved.start.isoformat(timespec='milliseconds')}\n"
            f"End:   {resolved.end.isoformat(timespec='milliseconds')}",
            border_style="cyan"
        ))

        if not transactions:
            return

        txn_table = Table(show_header=True, padding=(0, 1))
        txn_table.add_column("Date", style="cyan", width=12)
        txn_table.add_column("Account", width=10)
        txn_table.add_column("Description", style="white", max_width=40)
        txn_table.add_column("Category", style="dim", width=20)
        txn_table.add_column("Amount", justify="right", width=12)

        for txn in state.service.get_transactions(month_key, payday=payday):
            txn_table.add_row(
                txn.date,
                txn.account_id,
                txn.display_description[:40],
                category_label(txn.app_category_id, txn.app_sub_category_id),
                f"{txn.amount:,.2f}",
            )

        console.print(txn_table)

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if state.verbose:
            console.print_exception()
        raise typer.Exit(code=1)


@app.command(name="rules")
def rules(
    apply: bool = typer.Option(
        False,
        "--apply",
        help="Re-run the rules over stored transactions",
    ),
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        help="With --apply, also re-categorize categorized transactions",
    ),
):
    """
    Show the categorization rule chain, optionally applying it.

    Examples:
        budget-ledger rules
        budget-ledger rules --apply --overwrite
    """
    try:
        engine: CategorizationEngine = state.service.categorization_engine
        console.print(Panel(engine.get_rule_chain_info(), title="Rule chain", border_style="cyan"))

        if apply:
            changed = state.service.recategorize(overwrite=overwrite)
            console.print(f"[bold green]✓ Recategorized {changed} transactions[/bold green]")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if state.verbose:
            console.print_exception()
        raise typer.Exit(code=1)


def cli_main():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    cli_main()

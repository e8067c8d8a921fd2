"""
CLI interface for Chamber Billing.

Provides command-line access to pricing, record import, monthly reports
and work orders.
"""

import json
import logging
import os
import sys
from decimal import Decimal
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from chamber_billing.config.loader import load_billing_config, resolve_config_path
from chamber_billing.core.cost_engine import CostResult, compute_cost
from chamber_billing.core.orders import OrderDocument, build_order, round_money
from chamber_billing.core.records import Domain, normalize_billing, record_from_dict
from chamber_billing.core.statistics import (
    PeriodSummary,
    last_registration_number,
    list_experts,
    summarize_period,
)
from chamber_billing.storage.db import DEFAULT_DB_PATH
from chamber_billing.storage.repository import get_repository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

DB_OPTION = typer.Option(DEFAULT_DB_PATH, "--db", help="Path to the SQLite record store")
CONFIG_OPTION = typer.Option(
    None, "--config", "-c",
    help="Path to the tariff YAML file (defaults to $CHAMBER_BILLING_CONFIG)"
)
DOMAIN_OPTION = typer.Option(..., "--domain", "-d", help="conclusions or certificates")

_CONCLUSION_COMPONENTS = (
    ("Model tier", "model_cost"),
    ("Codes", "code_cost"),
    ("Complexity surcharge", "complexity_cost"),
    ("Urgency surcharge", "urgency_cost"),
    ("Contractual pages", "page_cost"),
)
_CERTIFICATE_COMPONENTS = (
    ("Main certificate", "urgent_main_cert_cost"),
    ("Additional positions", "urgent_positions_cost"),
    ("Additional pages", "urgent_additional_pages_cost"),
)


def _configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.WARNING))


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Chamber Billing CLI."""
    _configure_logging()
    if ctx.invoked_subcommand is None:
        console.print("Chamber Billing - Use --help to see available commands")


@app.command()
def init(db: str = DB_OPTION):
    """Initialize the record store."""
    try:
        initialize_schema(db)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command("import-records")
def import_records(
    path: str = typer.Argument(..., help="JSON file with a list of records"),
    domain: str = DOMAIN_OPTION,
    db: str = DB_OPTION
):
    """Import records from a JSON file into the record store."""
    try:
        parsed_domain = Domain.parse(domain)
        with open(path, 'r', encoding='utf-8') as f:
            raw_records = json.load(f)
        if not isinstance(raw_records, list):
            raise ValueError("Records file must contain a JSON list")

        records = [record_from_dict(raw, parsed_domain) for raw in raw_records]
        repository = get_repository(db)
        repository.initialize()
        stored = repository.add_many(records, parsed_domain)
        console.print(f"[green]✓[/] Imported {len(stored)} {parsed_domain.value} records")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def quote(
    domain: str = typer.Argument(..., help="conclusions or certificates"),
    attributes: Optional[List[str]] = typer.Option(
        None,
        "--set",
        "-s",
        help="Case attribute as key=value, e.g. --set models=3 --set urgency=true"
    ),
    config: Optional[str] = CONFIG_OPTION
):
    """
    Price a single case without storing it.

    Attributes use the record field names (models, positions, codes,
    complexity, urgency, discount, conclusion_type, pages, units,
    additional_pages, production_type, certificate_service_type,
    custom_cost). Missing attributes count as zero.
    """
    try:
        parsed_domain = Domain.parse(domain)
        billing_config = load_billing_config(resolve_config_path(config))
        domain_config = billing_config.for_domain(parsed_domain)

        billing = normalize_billing(_parse_attributes(attributes or []), parsed_domain)
        result = compute_cost(
            billing, domain_config.tariff_table, domain_config.settings, parsed_domain
        )
        _display_cost_result(result, parsed_domain)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def report(
    domain: str = DOMAIN_OPTION,
    month: str = typer.Option(..., "--month", "-m", help="Reporting month as YYYY-MM"),
    expert: Optional[str] = typer.Option(None, "--expert", "-e", help="Limit to one expert"),
    config: Optional[str] = CONFIG_OPTION,
    db: str = DB_OPTION
):
    """Summarize a month and show progress against the plan."""
    try:
        parsed_domain = Domain.parse(domain)
        billing_config = load_billing_config(resolve_config_path(config))
        domain_config = billing_config.for_domain(parsed_domain)

        repository = get_repository(db)
        records = repository.list(parsed_domain, month=month, expert=expert)
        summary = summarize_period(
            records,
            domain_config.tariff_table,
            domain_config.settings,
            parsed_domain,
            domain_config.plan_for_month(month)
        )
        last_number = last_registration_number(repository.list(parsed_domain))
        _display_summary(summary, month, last_number)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def experts(
    domain: str = DOMAIN_OPTION,
    config: Optional[str] = CONFIG_OPTION,
    db: str = DB_OPTION
):
    """List experts known from records and monthly plans."""
    try:
        parsed_domain = Domain.parse(domain)
        billing_config = load_billing_config(resolve_config_path(config))
        domain_config = billing_config.for_domain(parsed_domain)

        records = get_repository(db).list(parsed_domain)
        for name in list_experts(records, domain_config.monthly_plans):
            console.print(name)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def order(
    record_id: int = typer.Argument(..., help="Record id"),
    domain: str = DOMAIN_OPTION,
    config: Optional[str] = CONFIG_OPTION,
    db: str = DB_OPTION
):
    """Show the priced lines of a work order, VAT included."""
    try:
        parsed_domain = Domain.parse(domain)
        billing_config = load_billing_config(resolve_config_path(config))
        domain_config = billing_config.for_domain(parsed_domain)

        record = get_repository(db).get(record_id, parsed_domain)
        if record is None:
            console.print(f"[red]Error:[/] {parsed_domain.value} record {record_id} not found")
            sys.exit(EXIT_CODE_FAIL)

        document = build_order(
            record, domain_config.tariff_table, domain_config.settings, parsed_domain
        )
        _display_order(document)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


def _parse_attributes(pairs: List[str]) -> Dict[str, str]:
    """Turn ``key=value`` options into a raw record mapping."""
    attributes = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        if not separator or not key.strip():
            raise ValueError(f"Attribute must look like key=value, got '{pair}'")
        attributes[key.strip()] = value.strip()
    return attributes


def _format_currency(amount: Decimal) -> str:
    """Format an amount in hryvnias."""
    return f"{round_money(amount):,.2f} грн"


def _format_percent(value: Decimal) -> str:
    return f"{value:.2f}%"


def _display_cost_result(result: CostResult, domain: Domain):
    """Display itemized components and totals of one case."""
    components = (
        _CERTIFICATE_COMPONENTS if domain is Domain.CERTIFICATES else _CONCLUSION_COMPONENTS
    )
    table = Table(title=f"Cost preview ({domain.value})")
    table.add_column("Component")
    table.add_column("Amount", justify="right")

    for label, attribute in components:
        amount = getattr(result, attribute)
        if amount:
            table.add_row(label, _format_currency(amount))

    table.add_row("[bold]Without discount[/bold]", _format_currency(result.sum_without_discount))
    table.add_row("[bold]With discount[/bold]", _format_currency(result.sum_with_discount))
    console.print(table)


def _display_summary(summary: PeriodSummary, month: str, last_number: str):
    """Display period totals and plan progress."""
    console.print(f"\n[bold]Report for {month}[/bold]")
    console.print("-" * 40)
    console.print(
        f"Records: {summary.record_count} "
        f"(completed: {summary.completed_count} | not completed: {summary.not_completed_count})"
    )
    console.print(f"Last registration number: {last_number}")
    console.print(f"Total without discount: {_format_currency(summary.total_without_discount)}")
    console.print(f"Total with discount: {_format_currency(summary.total_with_discount)}")
    console.print(
        f"Plan: {_format_currency(summary.completed_total)} / "
        f"{_format_currency(summary.total_plan)} ({_format_percent(summary.plan_percentage)})"
    )

    if not summary.expert_progress:
        console.print("\n[dim]No expert plans for this month.[/]")
        return

    table = Table(title="Plan by expert")
    table.add_column("Expert")
    table.add_column("Completed", justify="right")
    table.add_column("Plan", justify="right")
    table.add_column("Progress", justify="right")
    for progress in summary.expert_progress:
        table.add_row(
            progress.name,
            _format_currency(progress.completed_total),
            _format_currency(progress.plan_amount),
            _format_percent(progress.percentage)
        )
    console.print(table)


def _display_order(document: OrderDocument):
    """Display work order lines and totals."""
    console.print(f"\n[bold]Order №{document.registration_number}[/bold]")
    console.print(f"Company: {document.company_name}")
    console.print(f"Expert: {document.expert}")

    table = Table()
    table.add_column("Service")
    table.add_column("Quantity")
    table.add_column("Amount", justify="right")
    table.add_column("With discount", justify="right")
    for line in document.lines:
        table.add_row(
            line.label,
            line.quantity or "",
            _format_currency(line.amount),
            _format_currency(line.discounted_amount)
        )
    console.print(table)

    console.print(f"Total without VAT: {_format_currency(document.total_with_discount)}")
    console.print(f"VAT 20%: {_format_currency(document.vat)}")
    console.print(f"[bold]Total: {_format_currency(document.total_with_vat)}[/bold]")


if __name__ == "__main__":
    app()

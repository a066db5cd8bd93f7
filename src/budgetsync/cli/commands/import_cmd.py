"""CSV import commands."""

from datetime import date

import click

from budgetsync.adapters.csv_source import CSVTransactionSource
from budgetsync.cli.error_handling import handle_domain_error, handle_external_error
from budgetsync.domain.errors import ExternalSystemError
from budgetsync.domain.import_service import ImportService
from budgetsync.utils.date_parser import get_date_range, parse_date

# Lower bound used when --start-date is omitted: the whole file is imported
EARLIEST_DATE = date(1970, 1, 1)
PERIODS = ["last-7-days", "last-30-days", "this-month", "last-month"]


@click.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", "account_id", required=True, help="Source account ID")
@click.option("--start-date", help="Only import transactions on or after this date")
@click.option("--end-date", help="Only import transactions on or before this date (default: today)")
@click.option(
    "--period",
    type=click.Choice(PERIODS),
    help="Named date range instead of --start-date/--end-date",
)
@click.pass_context
def import_csv(
    ctx,
    csv_file: str,
    account_id: str,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
):
    """Import transactions from a bank CSV export.

    The file needs id, date, amount and currency columns. Transactions that
    were imported before are reported as duplicates and left untouched.

    Examples:
        budgetsync import export.csv --account fio-2100012345
        budgetsync import export.csv --account fio-2100012345 --start-date "30 days ago"
        budgetsync import export.csv --account fio-2100012345 --period last-month
    """
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --start-date or --end-date", err=True)
        ctx.exit(1)

    db = ctx.obj["db"]
    service = ImportService(db, ctx.obj["config"])

    try:
        if period:
            start, end = get_date_range(period)
        else:
            start = parse_date(start_date) if start_date else EARLIEST_DATE
            end = parse_date(end_date) if end_date else date.today()
        result = service.import_from_source(CSVTransactionSource(csv_file), account_id, start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)
    except ExternalSystemError as e:
        handle_external_error(ctx, e)

    events = list(result.events)
    events.append(
        service.create_import_completed_event(account_id, result.imported_count, result.batch_id)
    )
    ctx.obj["events"].dispatch(events)

    click.echo(f"\nImport complete (batch {result.batch_id}):")
    click.echo(f"  Imported: {result.imported_count} transactions")
    click.echo(f"  Skipped: {len(result.duplicate_ids)} duplicates")
    if result.errors:
        click.echo(f"  Errors: {len(result.errors)}")
        for error in result.errors:
            click.echo(f"    {error.external_id or '(no id)'}: {error.reason}", err=True)


@click.command("batches")
@click.option("--account", "account_id", help="Only show batches of this account")
@click.pass_context
def list_batches(ctx, account_id: str | None):
    """List import batches, newest first."""
    service = ImportService(ctx.obj["db"], ctx.obj["config"])

    batches = service.list_batches(account_id)
    if not batches:
        click.echo("No imports yet.")
        return

    click.echo("\nImport batches:")
    click.echo("-" * 80)
    for batch in batches:
        started = batch.started_at.strftime("%Y-%m-%d %H:%M")
        click.echo(
            f"{str(batch.id):28s} | {started} | {batch.status.value:11s} | "
            f"{batch.transaction_count} imported, {batch.duplicate_count} duplicates, "
            f"{batch.error_count} errors"
        )
        if batch.error_message:
            click.echo(f"    {batch.error_message}")


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_csv)
    cli.add_command(list_batches)

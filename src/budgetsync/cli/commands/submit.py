"""Submission command."""

import click

from budgetsync.adapters.csv_export import CSVExportSubmissionPort
from budgetsync.cli.error_handling import parse_transaction_ids_or_exit
from budgetsync.domain.submission import SubmissionService, SubmissionStatus


@click.command("submit")
@click.argument("transaction_ids", nargs=-1)
@click.option("--all", "all_ready", is_flag=True, help="Submit every categorized transaction")
@click.option("--account", "account_id", help="With --all, only this account")
@click.option(
    "--export",
    "export_path",
    required=True,
    type=click.Path(dir_okay=False),
    help="CSV file to append submitted transactions to",
)
@click.pass_context
def submit_transactions(ctx, transaction_ids: tuple[str, ...], all_ready: bool, account_id, export_path):
    """Submit categorized transactions to the budgeting app import file.

    Examples:
        budgetsync submit --all --export ynab-import.csv
        budgetsync submit fio-2100012345:100001 --export ynab-import.csv
    """
    service = SubmissionService(
        ctx.obj["db"], CSVExportSubmissionPort(export_path), ctx.obj["config"]
    )
    if all_ready:
        ids = service.find_submittable(account_id)
    else:
        ids = parse_transaction_ids_or_exit(ctx, transaction_ids)

    if not ids:
        click.echo("Nothing to submit.")
        return

    result = service.submit_transactions(ids)
    ctx.obj["events"].dispatch(result.events)

    for outcome in result.outcomes:
        if outcome.status == SubmissionStatus.SUBMITTED:
            click.echo(f"✓ {outcome.transaction_id} submitted as {outcome.external_id}")
        elif outcome.status == SubmissionStatus.ALREADY_SUBMITTED:
            click.echo(f"- {outcome.transaction_id} already submitted")
        else:
            click.echo(f"✗ {outcome.transaction_id}: {outcome.reason} ({outcome.failure})")

    click.echo(
        f"\nResults: {result.submitted_count} submitted, "
        f"{result.already_submitted_count} already submitted, {result.failed_count} failed"
    )
    if result.failed_count:
        ctx.exit(1)


def register_commands(cli):
    """Register submit command with main CLI."""
    cli.add_command(submit_transactions)

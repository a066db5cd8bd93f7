"""Reporting commands."""

import click

from budgetsync.domain.processing_state import TransactionStatus
from budgetsync.domain.submission import SubmissionService


@click.command("status")
@click.option("--account", "account_id", help="Only this account")
@click.option(
    "--status",
    "status_name",
    type=click.Choice([s.value for s in TransactionStatus]),
    help="Only transactions in this status",
)
@click.pass_context
def show_status(ctx, account_id: str | None, status_name: str | None):
    """List transactions with their effective category and payee."""
    db = ctx.obj["db"]

    status = TransactionStatus(status_name) if status_name else None
    states = {
        s.transaction_id: s for s in db.list_processing_states(account_id=account_id, status=status)
    }
    transactions = [t for t in db.list_transactions(account_id=account_id) if t.id in states]
    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(
        f"\n{'ID':32s} {'Date':10s} {'Amount':>12s} {'Status':11s} {'Category':16s} Payee"
    )
    click.echo("-" * 100)
    for txn in transactions:
        state = states[txn.id]
        status_text = state.status.value + ("*" if state.is_duplicate else "")
        click.echo(
            f"{str(txn.id):32s} {txn.date.isoformat():10s} "
            f"{txn.amount:>8.2f} {txn.currency} {status_text:11s} "
            f"{state.effective_category or '-':16s} {state.effective_payee_name or '-'}"
        )
    if any(s.is_duplicate for s in states.values()):
        click.echo("\n* marked as duplicate")


@click.command("stats")
@click.option("--account", "account_id", help="Only this account")
@click.pass_context
def show_stats(ctx, account_id: str | None):
    """Show pipeline statistics."""
    service = SubmissionService(ctx.obj["db"], None, ctx.obj["config"])
    stats = service.get_submission_statistics(account_id)

    click.echo("\nPipeline statistics:")
    click.echo(f"  Total:       {stats.total}")
    click.echo(f"  Imported:    {stats.imported}")
    click.echo(f"  Categorized: {stats.categorized} ({stats.ready} ready to submit)")
    click.echo(f"  Submitted:   {stats.submitted}")
    click.echo(f"  Duplicates:  {stats.duplicates}")


def register_commands(cli):
    """Register reporting commands with main CLI."""
    cli.add_command(show_status)
    cli.add_command(show_stats)

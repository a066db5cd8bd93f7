"""Categorization commands: automatic rules, overrides and duplicate flags."""

from decimal import Decimal

import click

from budgetsync.cli.error_handling import handle_domain_error, parse_transaction_ids_or_exit
from budgetsync.domain.categorization import CategorizationService, TransactionFilter
from budgetsync.domain.import_service import ImportService
from budgetsync.domain.identifiers import TransactionId
from budgetsync.domain.processing_state import TransactionStatus
from budgetsync.domain.rules import KeywordCategorizationStrategy


def _service(ctx) -> CategorizationService:
    config = ctx.obj["config"]
    strategy = KeywordCategorizationStrategy(config.categorization.rules)
    return CategorizationService(ctx.obj["db"], strategy, config)


@click.command("categorize")
@click.argument("transaction_ids", nargs=-1)
@click.option("--all", "all_pending", is_flag=True, help="Categorize every imported transaction")
@click.option("--account", "account_id", help="With --all, only this account")
@click.pass_context
def categorize_transactions(ctx, transaction_ids: tuple[str, ...], all_pending: bool, account_id):
    """Suggest categories using the configured keyword rules.

    Examples:
        budgetsync categorize fio-2100012345:100001
        budgetsync categorize --all
    """
    db = ctx.obj["db"]
    if all_pending:
        states = db.list_processing_states(account_id=account_id, status=TransactionStatus.IMPORTED)
        ids = [s.transaction_id for s in states if not s.is_duplicate]
    else:
        ids = parse_transaction_ids_or_exit(ctx, transaction_ids)

    if not ids:
        click.echo("Nothing to categorize.")
        return

    result = _service(ctx).categorize_transactions(ids)
    ctx.obj["events"].dispatch(result.events)

    for outcome in result.outcomes:
        if outcome.categorized:
            click.echo(f"✓ {outcome.transaction_id}: {outcome.category}")
        else:
            click.echo(f"✗ {outcome.transaction_id}: {outcome.reason}")
    average = result.average_confidence.value if result.average_confidence else None
    summary = f"\nResults: {result.categorized_count} categorized, {result.failed_count} not"
    if average is not None:
        summary += f" (average confidence {average:.2f})"
    click.echo(summary)


@click.command("override")
@click.argument("transaction_id", metavar="TRANSACTION_ID")
@click.argument("category_id", metavar="CATEGORY_ID")
@click.option("--payee", help="Payee name")
@click.option("--memo", help="Memo")
@click.pass_context
def override_category(ctx, transaction_id: str, category_id: str, payee, memo):
    """Set the category (and optionally payee and memo) by hand.

    Examples:
        budgetsync override fio-2100012345:100001 groceries --payee "Corner Shop"
    """
    try:
        result = _service(ctx).update_category(
            TransactionId.parse(transaction_id), category_id, memo=memo, payee_name=payee
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    ctx.obj["events"].dispatch(result.events)

    state = result.state
    click.echo(f"Transaction {transaction_id} categorized as '{state.effective_category}'")
    if state.effective_payee_name:
        click.echo(f"  Payee: {state.effective_payee_name}")


@click.command("bulk-override")
@click.argument("category_id", metavar="CATEGORY_ID")
@click.option("--contains", help="Description contains text")
@click.option("--counterparty", help="Counterparty name or account contains text")
@click.option("--account", "account_id", help="Only this account")
@click.option("--min-amount", type=Decimal, help="Minimum amount")
@click.option("--max-amount", type=Decimal, help="Maximum amount")
@click.option("--payee", help="Payee name")
@click.option("--memo", help="Memo")
@click.pass_context
def bulk_override(
    ctx, category_id: str, contains, counterparty, account_id, min_amount, max_amount, payee, memo
):
    """Set the same category on every matching transaction.

    Submitted transactions are never changed.

    Examples:
        budgetsync bulk-override groceries --contains "tesco"
    """
    if not any([contains, counterparty, account_id, min_amount is not None, max_amount is not None]):
        click.echo("Error: Give at least one filter option", err=True)
        ctx.exit(1)

    transaction_filter = TransactionFilter(
        source_account_id=account_id,
        description_contains=contains,
        counterparty_contains=counterparty,
        min_amount=min_amount,
        max_amount=max_amount,
    )
    try:
        result = _service(ctx).bulk_update_category(
            transaction_filter, category_id, memo=memo, payee_name=payee
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    ctx.obj["events"].dispatch(result.events)
    click.echo(f"Updated {result.updated_count} transactions to '{category_id}'")


@click.command("mark-duplicate")
@click.argument("transaction_id", metavar="TRANSACTION_ID")
@click.pass_context
def mark_duplicate(ctx, transaction_id: str):
    """Flag a transaction as a duplicate so it is never submitted."""
    service = ImportService(ctx.obj["db"], ctx.obj["config"])
    try:
        service.mark_duplicate(TransactionId.parse(transaction_id))
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Transaction {transaction_id} marked as duplicate")


def register_commands(cli):
    """Register categorization commands with main CLI."""
    cli.add_command(categorize_transactions)
    cli.add_command(override_category)
    cli.add_command(bulk_override)
    cli.add_command(mark_duplicate)

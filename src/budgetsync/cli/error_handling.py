"""CLI error handling helpers."""

import click

from budgetsync.domain.errors import DomainError, ExternalSystemError
from budgetsync.domain.identifiers import TransactionId


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def handle_external_error(ctx: click.Context, error: ExternalSystemError) -> None:
    """Render a bank or budgeting-system failure and exit with failure."""
    click.echo(f"Error: {type(error).__name__}: {error}", err=True)
    ctx.exit(1)


def parse_transaction_ids_or_exit(ctx: click.Context, values) -> list[TransactionId]:
    """Parse ``account:transactionId`` arguments, dropping repeats, or exit."""
    ids: list[TransactionId] = []
    try:
        for value in values:
            transaction_id = TransactionId.parse(value)
            if transaction_id not in ids:
                ids.append(transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    return ids

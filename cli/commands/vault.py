#!/usr/bin/env python3
"""
Vault Commands for MintGate CLI

Inspect the custody balance and withdraw it to a payee.
"""

import click

from ..context import CLIContext, pass_context, handle_cli_error


@click.group()
@pass_context
def vault(ctx: CLIContext):
    """Payment custody commands."""
    ctx.logger.debug("Vault command group invoked")


@vault.command('balance')
@pass_context
@handle_cli_error
def balance(ctx: CLIContext):
    """Show the custody balance awaiting withdrawal."""
    controller = ctx.load_controller()
    ctx.output({"custody_address": controller.custody_address, "balance": controller.balance})


@vault.command('withdraw')
@click.option('--caller', required=True, envvar='MINTGATE_CALLER',
              help='Identity requesting the withdrawal (env: MINTGATE_CALLER)')
@click.option('--payee', required=True, help='Identity receiving the funds')
@pass_context
@handle_cli_error
def withdraw(ctx: CLIContext, caller: str, payee: str):
    """
    Move the entire custody balance to PAYEE. Owner only.

    Examples:
        mintgate vault withdraw --caller 0xowner... --payee 0xtreasury...
    """
    with ctx.collection() as controller:
        amount = controller.withdraw(caller, payee)
    ctx.output({"payee": payee, "amount": amount})


@vault.command('payouts')
@pass_context
@handle_cli_error
def payouts(ctx: CLIContext):
    """List value credited to payees by past withdrawals."""
    state = ctx.storage().load()
    rows = [
        {"payee": payee, "amount": amount, "rejecting": payee in state.rejecting_payees}
        for payee, amount in sorted(state.payouts.items())
    ]
    ctx.output(rows)


@vault.command('set-payee-policy')
@click.argument('payee')
@click.option('--reject/--accept', default=True,
              help='Whether PAYEE refuses incoming transfers')
@pass_context
@handle_cli_error
def set_payee_policy(ctx: CLIContext, payee: str, reject: bool):
    """Mark a payee as refusing (or accepting) incoming transfers."""
    with ctx.collection() as controller:
        if reject:
            controller.vault.payout.reject_transfers(payee)
        else:
            controller.vault.payout.accept_transfers(payee)
    ctx.output({"payee": payee, "rejecting": reject})

#!/usr/bin/env python3
"""
Minting Commands for MintGate CLI

Commands for issuing tokens through the general and whitelist channels.
"""

from typing import Optional, Tuple

import click

from crypto.merkle import load_allowlist_proof, parse_hash

from ..context import CLIContext, pass_context, handle_cli_error


def _mint_options(func):
    """Options shared by both channels."""
    options = [
        click.option('--caller', required=True, envvar='MINTGATE_CALLER',
                     help='Identity submitting the request (env: MINTGATE_CALLER)'),
        click.option('--recipient', help='Identity receiving the tokens (default: caller)'),
        click.option('--count', type=click.IntRange(min=1), default=1, show_default=True,
                     help='Number of tokens'),
        click.option('--value', type=click.IntRange(min=0), default=0, show_default=True,
                     help='Attached payment'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _result(ctx: CLIContext, channel: str, caller: str, recipient: str, token_ids, value: int):
    ctx.output({
        "channel": channel,
        "caller": caller,
        "recipient": recipient,
        "token_ids": token_ids,
        "value": value,
    })


@click.group()
@pass_context
def mint(ctx: CLIContext):
    """
    Token minting commands.

    Mint through the general channel or, with a Merkle proof, the whitelist channel.
    """
    ctx.logger.debug("Mint command group invoked")


@mint.command('general')
@_mint_options
@pass_context
@handle_cli_error
def mint_general(ctx: CLIContext, caller: str, recipient: Optional[str], count: int, value: int):
    """
    Mint through the general channel.

    Requires VALUE >= mint_price * COUNT.

    Examples:
        mintgate mint general --caller 0xabc... --count 3 --value 300
    """
    recipient = recipient or caller
    with ctx.collection() as controller:
        token_ids = controller.mint_to(caller, recipient, count=count, value=value)
    _result(ctx, "general", caller, recipient, token_ids, value)


@mint.command('whitelist')
@_mint_options
@click.option('--proof', 'proof_hashes', multiple=True,
              help='Proof hash (hex); repeat in path order')
@click.option('--allowlist', type=click.Path(exists=True, dir_okay=False),
              help="Read the caller's proof from an allowlist document")
@pass_context
@handle_cli_error
def mint_whitelist(ctx: CLIContext, caller: str, recipient: Optional[str], count: int, value: int,
                   proof_hashes: Tuple[str, ...], allowlist: Optional[str]):
    """
    Mint through the whitelist channel.

    The proof must show the CALLER is a whitelist member; the recipient may
    be anyone.

    Examples:
        mintgate mint whitelist --caller 0xabc... --allowlist allowlist.json --value 50
    """
    if allowlist and proof_hashes:
        raise click.UsageError("Use either --proof or --allowlist, not both")

    if allowlist:
        proof = load_allowlist_proof(allowlist, caller)
    else:
        proof = [parse_hash(h) for h in proof_hashes]

    recipient = recipient or caller
    with ctx.collection() as controller:
        token_ids = controller.whitelist_mint_to(caller, recipient, proof, count=count, value=value)
    _result(ctx, "whitelist", caller, recipient, token_ids, value)

#!/usr/bin/env python3
"""
Collection Commands for MintGate CLI

Commands for creating a collection, inspecting it and changing its
owner-restricted configuration.
"""

import json
from pathlib import Path
from typing import Optional

import click

from crypto.merkle import parse_hash
from issuance.controller import MintController
from issuance.ledger import fixed_receiver
from registry.schema import CollectionConfig
from registry.storage import StorageError

from ..context import CLIContext, pass_context, handle_cli_error, summarize


CALLER_OPTION = click.option(
    '--caller', required=True, envvar='MINTGATE_CALLER',
    help='Identity submitting the call (env: MINTGATE_CALLER)'
)


@click.group()
@pass_context
def collection(ctx: CLIContext):
    """
    Collection management commands.

    Create a collection and manage its owner-restricted configuration.
    """
    ctx.logger.debug("Collection command group invoked")


@collection.command('init')
@click.option('--owner', required=True, help='Owner identity')
@click.option('--custody', 'custody_address', required=True, help="The collection's own identity (royalty receiver)")
@click.option('--name', help='Collection name')
@click.option('--symbol', help='Collection symbol')
@click.option('--base-uri', help='Base URI for token metadata')
@click.option('--mint-price', type=click.IntRange(min=0), help='General channel price per token')
@click.option('--whitelist-price', type=click.IntRange(min=0), help='Whitelist channel price')
@click.option('--total-cap', type=click.IntRange(min=0), help='Total supply cap')
@click.option('--whitelist-cap', type=click.IntRange(min=0), help='Whitelist supply cap')
@click.option('--royalty-bps', type=click.IntRange(min=0, max=1000), help='Royalty in parts per thousand')
@click.option('--merkle-root', help='Initial whitelist Merkle root (hex)')
@click.option('--general/--no-general', 'allow_general_mint', default=None, help='Enable the general channel')
@click.option('--whitelist/--no-whitelist', 'allow_whitelist_mint', default=None, help='Enable the whitelist channel')
@click.option('--force', is_flag=True, help='Overwrite an existing collection state file')
@pass_context
@handle_cli_error
def init_collection(ctx: CLIContext, owner: str, custody_address: str, force: bool, **overrides):
    """
    Create a new collection state file.

    Unspecified settings fall back to the `collection` configuration section.

    Examples:
        mintgate collection init --owner 0xabc... --custody 0xdef... --mint-price 100 --general
    """
    storage = ctx.storage()
    settings = dict(ctx.get_config('collection', {}))
    rename = {'total_cap': 'total_supply_cap', 'whitelist_cap': 'whitelist_supply_cap'}
    for key, value in overrides.items():
        if value is not None:
            settings[rename.get(key, key)] = value

    config = CollectionConfig(owner=owner, custody_address=custody_address, **settings)
    controller = MintController(config)
    with storage.lock():
        if storage.exists() and not force:
            raise StorageError(f"Collection already exists at {storage.file_path} (use --force to overwrite)")
        storage.save(controller.to_state(), create_backup=force)

    ctx.logger.info(f"Created collection at {storage.file_path}")
    ctx.output(summarize(controller))


@collection.command('show')
@pass_context
@handle_cli_error
def show_collection(ctx: CLIContext):
    """Show configuration and counters."""
    ctx.output(summarize(ctx.load_controller()))


@collection.command('set-base-uri')
@CALLER_OPTION
@click.argument('base_uri')
@pass_context
@handle_cli_error
def set_base_uri(ctx: CLIContext, caller: str, base_uri: str):
    """Set the base URI. Owner only."""
    with ctx.collection() as controller:
        controller.set_base_uri(caller, base_uri)
    ctx.output({"base_uri": base_uri})


@collection.command('set-merkle-root')
@CALLER_OPTION
@click.argument('root', required=False)
@click.option('--from-allowlist', type=click.Path(exists=True, dir_okay=False),
              help='Read the root from an allowlist document')
@pass_context
@handle_cli_error
def set_merkle_root(ctx: CLIContext, caller: str, root: Optional[str], from_allowlist: Optional[str]):
    """
    Set the whitelist Merkle root. Owner only.

    Pass 0x00..00 (64 zeros) to clear the whitelist.
    """
    if from_allowlist:
        with open(from_allowlist) as f:
            root = json.load(f)["root"]
    if not root:
        raise click.UsageError("Provide ROOT or --from-allowlist")

    root_bytes = parse_hash(root)
    with ctx.collection() as controller:
        controller.set_merkle_root(caller, root_bytes)
    ctx.output({"merkle_root": "0x" + root_bytes.hex()})


@collection.command('set-flag')
@CALLER_OPTION
@click.argument('channel', type=click.Choice(['general', 'whitelist']))
@click.argument('state', type=click.Choice(['on', 'off']))
@pass_context
@handle_cli_error
def set_flag(ctx: CLIContext, caller: str, channel: str, state: str):
    """Enable or disable a mint channel. Owner only."""
    allow = state == 'on'
    with ctx.collection() as controller:
        if channel == 'general':
            controller.set_allow_general_mint(caller, allow)
        else:
            controller.set_allow_whitelist_mint(caller, allow)
    ctx.output({f"allow_{channel}_mint": allow})


@collection.command('set-royalty')
@CALLER_OPTION
@click.argument('royalty_bps', type=click.IntRange(min=0, max=1000))
@pass_context
@handle_cli_error
def set_royalty(ctx: CLIContext, caller: str, royalty_bps: int):
    """Set the royalty rate in parts per thousand. Owner only."""
    with ctx.collection() as controller:
        controller.set_royalty_bps(caller, royalty_bps)
    ctx.output({"royalty_bps": royalty_bps})


@collection.command('transfer-ownership')
@CALLER_OPTION
@click.argument('new_owner')
@pass_context
@handle_cli_error
def transfer_ownership(ctx: CLIContext, caller: str, new_owner: str):
    """Hand ownership to another identity. Owner only."""
    with ctx.collection() as controller:
        controller.transfer_ownership(caller, new_owner)
        owner = controller.owner
    ctx.output({"owner": owner})


@collection.command('register-contract')
@click.argument('identity')
@click.option('--acknowledges/--rejects', default=False,
              help='Whether the contract acknowledges token receipt')
@pass_context
@handle_cli_error
def register_contract(ctx: CLIContext, identity: str, acknowledges: bool):
    """Mark an identity as a contract-like recipient in the local ledger."""
    with ctx.collection() as controller:
        controller.ledger.register_contract(identity, fixed_receiver(acknowledges))
    ctx.output({"contract": identity, "acknowledges": acknowledges})


@collection.command('royalty-info')
@click.argument('token_id', type=click.IntRange(min=0))
@click.argument('sale_price', type=click.IntRange(min=0))
@pass_context
@handle_cli_error
def royalty_info(ctx: CLIContext, token_id: int, sale_price: int):
    """Show royalty receiver and amount for a sale."""
    receiver, amount = ctx.load_controller().royalty_info(token_id, sale_price)
    ctx.output({"token_id": token_id, "sale_price": sale_price, "receiver": receiver, "amount": amount})


@collection.command('owner-of')
@click.argument('token_id', type=click.IntRange(min=1))
@pass_context
@handle_cli_error
def owner_of(ctx: CLIContext, token_id: int):
    """Show the owner of a token."""
    ctx.output({"token_id": token_id, "owner": ctx.load_controller().owner_of(token_id)})


@collection.command('balance-of')
@click.argument('identity')
@pass_context
@handle_cli_error
def balance_of(ctx: CLIContext, identity: str):
    """Show how many tokens an identity holds."""
    ctx.output({"identity": identity, "balance": ctx.load_controller().balance_of(identity)})


@collection.command('events')
@click.option('--type', 'event_type',
              type=click.Choice(['mint', 'withdrawal', 'configuration_change', 'ownership_transfer']),
              help='Only show events of this type')
@click.option('--limit', type=click.IntRange(min=1), default=50, show_default=True)
@pass_context
@handle_cli_error
def events(ctx: CLIContext, event_type: Optional[str], limit: int):
    """List recorded issuance events, newest last."""
    log = ctx.load_controller().events
    selected = log.of_type(event_type) if event_type else list(log)
    rows = [
        {
            "event_id": e.event_id,
            "type": e.event_type.value,
            "actor": e.actor,
            "details": ", ".join(f"{k}={v}" for k, v in e.details.items()),
        }
        for e in selected[-limit:]
    ]
    ctx.output(rows)


@collection.command('backups')
@pass_context
@handle_cli_error
def backups(ctx: CLIContext):
    """List state file backups, newest first."""
    ctx.output([{"backup": str(Path(p).name)} for p in ctx.storage().list_backups()])

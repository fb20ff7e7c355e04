#!/usr/bin/env python3
"""
MintGate - Command Line Interface

A CLI for creating a collection, configuring its mint channels, building
whitelists, minting tokens and withdrawing collected payments.
"""

from typing import Optional

import click

from . import __version__
from .context import CLIContext, pass_context


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              type=click.Path(dir_okay=False),
              help='Path to configuration file')
@click.option('--profile', '-p',
              help='Configuration profile (production, development)')
@click.option('--state-file', '-s',
              type=click.Path(dir_okay=False),
              help='Collection state file (overrides storage.state_file)')
@click.option('--output-format', '-o',
              type=click.Choice(['table', 'json', 'yaml']),
              default=None,
              help='Output format')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(__version__, prog_name='mintgate')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        state_file: Optional[str], output_format: Optional[str], verbose: int):
    """
    MintGate Command Line Interface

    Gate token issuance behind payment, supply caps and a Merkle whitelist.

    Examples:
        mintgate collection init --owner 0x... --custody 0x... --mint-price 100
        mintgate whitelist build members.txt --output allowlist.json
        mintgate mint general --caller 0x... --value 100
        mintgate vault withdraw --caller 0x... --payee 0x...
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.state_file = state_file
    ctx.output_format = output_format
    ctx.verbose = verbose

    ctx.setup_logging()
    ctx.load_config()

    ctx.logger.debug("CLI initialized with context")


def register_commands():
    """Register all command modules with the main CLI."""
    from .commands.collection import collection
    from .commands.mint import mint
    from .commands.whitelist import whitelist
    from .commands.vault import vault
    from .commands.config import config

    for command in (collection, mint, whitelist, vault, config):
        cli.add_command(command)


register_commands()


def main():
    """Console script entry point."""
    cli()


if __name__ == '__main__':
    main()

#!/usr/bin/env python3
"""
Configuration Management Commands for MintGate CLI

Commands for managing CLI configuration, environment profiles, and settings.
"""

import json
import os
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from ..config import PROFILES, ENV_PREFIX, config_search_paths, profile_defaults

from ..context import CLIContext, pass_context, handle_cli_error


@click.group()
@pass_context
def config(ctx: CLIContext):
    """
    Configuration management commands.

    Generate, inspect and validate CLI configuration files.
    """
    ctx.logger.debug("Config command group invoked")


@config.command('init')
@click.option('--profile', type=click.Choice(sorted(PROFILES)),
              help='Configuration profile to use as base')
@click.option('--output', type=click.Path(dir_okay=False), help='Output file path')
@click.option('--format', 'file_format', type=click.Choice(['yaml', 'json']),
              default='yaml', help='Configuration file format')
@click.option('--force', is_flag=True, help='Overwrite existing configuration')
@pass_context
@handle_cli_error
def init_config(ctx: CLIContext, profile: Optional[str], output: Optional[str],
                file_format: str, force: bool):
    """
    Generate a default configuration file.

    Examples:
        mintgate config init
        mintgate config init --profile production --output production.yml
    """
    output_path = Path(output or ('.mintgate.yml' if file_format == 'yaml' else '.mintgate.json'))

    if output_path.exists() and not force:
        raise click.ClickException(f"Configuration file already exists: {output_path}. Use --force to overwrite.")

    config_data = profile_defaults(profile)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        if file_format == 'yaml':
            yaml.safe_dump(config_data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(config_data, f, indent=2)

    ctx.logger.info(f"Configuration file created: {output_path}")
    ctx.output({"path": str(output_path), "format": file_format, "profile": profile})


@config.command('show')
@click.option('--key', help='Specific configuration key to show (dot notation)')
@click.option('--sources', is_flag=True, help='Show configuration sources')
@pass_context
@handle_cli_error
def show_config(ctx: CLIContext, key: Optional[str], sources: bool):
    """
    Display the merged configuration.

    Examples:
        mintgate config show
        mintgate config show --key storage.state_file
        mintgate config show --sources
    """
    manager = ctx.config_manager

    if sources:
        ctx.output([{"order": i, "source": s} for i, s in enumerate(manager.get_sources(), 1)])
        return

    if key:
        value = manager.get(key)
        if value is None:
            click.echo(f"Configuration key not found: {key}", err=True)
            sys.exit(1)
        ctx.output(value if isinstance(value, dict) else {key: value})
        return

    ctx.output(manager.load(), ctx.output_format if ctx.output_format != 'table' else 'yaml')


@config.command('validate')
@pass_context
@handle_cli_error
def validate_config(ctx: CLIContext):
    """
    Validate the merged configuration.

    Invalid configuration is already rejected when the CLI starts, so this
    reports the sources that were checked.
    """
    errors = ctx.config_manager.validate()
    ctx.output({"valid": not errors, "sources": ctx.config_manager.get_sources(), "errors": errors})


@config.command('list-profiles')
@pass_context
@handle_cli_error
def list_profiles(ctx: CLIContext):
    """List predefined configuration profiles."""
    ctx.output([
        {"profile": name, "sections": ", ".join(sorted(overrides))}
        for name, overrides in PROFILES.items()
    ])


@config.command('search-paths')
@pass_context
@handle_cli_error
def search_paths(ctx: CLIContext):
    """Show configuration file search paths in order of precedence."""
    rows = [
        {"order": i, "path": str(path), "exists": path.exists()}
        for i, path in enumerate(config_search_paths(), 1)
    ]
    ctx.output(rows)

    env_vars = sorted(k for k in os.environ if k.startswith(ENV_PREFIX))
    if env_vars:
        ctx.logger.info(f"Active environment variables: {', '.join(env_vars)}")

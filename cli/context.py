"""
Shared CLI context for MintGate commands.
"""

import functools
import logging
import sys
import traceback
from contextlib import contextmanager
from typing import Any, Dict, Optional

import click

from issuance.controller import MintController
from registry.storage import CollectionStorage

from .config import ConfigurationManager, ConfigurationError
from .output import OutputFormatter


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Loggers that receive the CLI handler
LOGGER_NAMES = ('mintgate-cli', 'issuance', 'crypto', 'registry')


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.state_file: Optional[str] = None
        self.output_format: Optional[str] = None
        self.verbose: int = 0
        self.config_manager: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger('mintgate-cli')

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }

        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        for name in LOGGER_NAMES:
            logger = logging.getLogger(name)
            logger.setLevel(level)
            # Replace handlers from earlier runs; sys.stderr may have been swapped since
            for old in [h for h in logger.handlers if getattr(h, "_mintgate_cli", False)]:
                logger.removeHandler(old)
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            handler._mintgate_cli = True
            logger.addHandler(handler)

    def load_config(self):
        """Load hierarchical configuration."""
        self.config_manager = ConfigurationManager(self.config_file, self.profile)
        try:
            self.config_manager.load()
        except ConfigurationError as e:
            raise click.ClickException(str(e))

        errors = self.config_manager.validate()
        if errors:
            raise click.UsageError("Invalid configuration: " + "; ".join(errors))

        if self.output_format is None:
            self.output_format = self.config_manager.get('cli.output_format', 'table')

        self.logger.debug(f"Configuration sources: {', '.join(self.config_manager.get_sources())}")

    def get_config(self, key: str, default: Any = None) -> Any:
        """Get configuration value with fallback to default."""
        if self.config_manager is None:
            return default
        return self.config_manager.get(key, default)

    def output(self, data: Any, format_override: Optional[str] = None):
        """Output data in specified format."""
        formatter = OutputFormatter(
            format_override or self.output_format or 'table',
            color_output=self.get_config('cli.color_output', True)
        )
        click.echo(formatter.format(data))

    def storage(self) -> CollectionStorage:
        path = self.state_file or self.get_config('storage.state_file')
        return CollectionStorage(
            path,
            backup_count=self.get_config('storage.backup_count', 5),
            lock_timeout=self.get_config('storage.lock_timeout', 30.0),
        )

    def load_controller(self) -> MintController:
        return MintController.from_state(self.storage().load())

    @contextmanager
    def collection(self):
        """
        Load the stored collection, yield its controller and persist on success.

        The storage lock is held from load to save, so concurrent invocations
        apply their changes one after another. Nothing is written if the body
        raises.
        """
        storage = self.storage()
        with storage.lock():
            controller = MintController.from_state(storage.load())
            yield controller
            storage.save(controller.to_state())
        self.logger.debug(f"Saved collection state to {storage.file_path}")


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator to handle CLI errors gracefully."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except KeyboardInterrupt:
            click.echo("\nOperation cancelled by user.", err=True)
            sys.exit(130)
        except Exception as e:
            ctx = click.get_current_context(silent=True)
            cli_ctx = ctx.find_object(CLIContext) if ctx else None

            click.echo(f"Error: {e}", err=True)
            if cli_ctx and cli_ctx.verbose >= 2:
                click.echo(traceback.format_exc(), err=True)
            else:
                click.echo("Use -vv for detailed error information.", err=True)

            sys.exit(1)

    return wrapper


def summarize(controller: MintController) -> Dict[str, Any]:
    """Public read surface of a collection as a flat mapping."""
    return controller.snapshot()

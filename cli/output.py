#!/usr/bin/env python3
"""
Output Formatting Module for MintGate CLI

Provides output formatting for CLI results as tables, JSON or YAML.
"""

import json
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

import yaml
from tabulate import tabulate


class OutputFormatter:
    """Output formatter for CLI results."""

    def __init__(self, format_type: str = 'table', color_output: bool = True):
        """
        Initialize output formatter.

        Args:
            format_type: Output format (table, json, yaml)
            color_output: Enable colored output when writing to a terminal
        """
        self.format_type = format_type
        self.color_output = color_output and sys.stdout.isatty()

    def format(self, data: Any, headers: Optional[List[str]] = None) -> str:
        """Format data according to the configured format type."""
        if self.format_type == 'json':
            return self.format_json(data)
        elif self.format_type == 'yaml':
            return self.format_yaml(data)
        else:
            return self.format_table(data, headers)

    def format_json(self, data: Any) -> str:
        """Format data as JSON."""
        return json.dumps(data, indent=2, default=self._json_encoder)

    def format_yaml(self, data: Any) -> str:
        """Format data as YAML."""
        return yaml.safe_dump(json.loads(self.format_json(data)), default_flow_style=False, sort_keys=False)

    def format_table(self, data: Any, headers: Optional[List[str]] = None) -> str:
        """Format data as a table."""
        if isinstance(data, dict):
            return self._format_dict_table(data)
        elif isinstance(data, list):
            return self._format_list_table(data, headers)
        else:
            return str(data)

    def _format_dict_table(self, data: Dict[str, Any]) -> str:
        """Format dictionary as a key-value table."""
        table_data = [[self._colorize(k, 'key'), self._format_value(v)]
                      for k, v in data.items()]
        return tabulate(table_data, tablefmt='plain')

    def _format_list_table(self, data: List[Any], headers: Optional[List[str]] = None) -> str:
        """Format list as a table."""
        if not data:
            return "No data available"

        if isinstance(data[0], dict):
            if headers is None:
                headers = list(data[0].keys())

            table_data = [[self._format_value(item.get(h, '')) for h in headers] for item in data]
            colored_headers = [self._colorize(h, 'header') for h in headers]
            return tabulate(table_data, headers=colored_headers, tablefmt='grid')

        return '\n'.join(str(item) for item in data)

    def _format_value(self, value: Any) -> str:
        """Format individual value for display."""
        if value is None:
            return self._colorize('null', 'null')
        elif isinstance(value, bool):
            return self._colorize('true' if value else 'false', 'bool')
        elif isinstance(value, (int, float)):
            return self._colorize(str(value), 'number')
        elif isinstance(value, datetime):
            return value.strftime('%Y-%m-%d %H:%M:%S')
        elif isinstance(value, dict):
            return f"<{len(value)} items>"
        elif isinstance(value, list):
            if len(value) <= 5 and all(isinstance(v, (int, str)) for v in value):
                return ', '.join(str(v) for v in value)
            return f"[{len(value)} items]"
        else:
            return str(value)

    def _colorize(self, text: str, color_type: str) -> str:
        """Add color to text if color output is enabled."""
        if not self.color_output:
            return text

        # ANSI color codes
        colors = {
            'header': '\033[1;34m',  # Bold blue
            'key': '\033[1;36m',     # Bold cyan
            'number': '\033[33m',    # Yellow
            'bool': '\033[35m',      # Magenta
            'null': '\033[90m',      # Gray
        }
        return f"{colors.get(color_type, '')}{text}\033[0m"

    def _json_encoder(self, obj: Any) -> Any:
        """Encode values the json module does not handle."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, bytes):
            return '0x' + obj.hex()
        if isinstance(obj, set):
            return sorted(obj)
        return str(obj)

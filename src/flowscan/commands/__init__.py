"""CLI command implementations for the scanner.

Each command module provides configuration loading and validation for one
CLI command.
"""

from flowscan.commands.scan import load_scan_config

__all__ = [
    "load_scan_config",
]

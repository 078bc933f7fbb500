"""
Shared utilities for Azure automation

Exports:
- AzureCLI: Execute Azure CLI commands
- check_az_login: Verify Azure authentication
- redact_command: Mask secret values before logging a command
- ColorPrinter: Colored console output
- setup_logger: Configure logging system
- get_secret: Resolve a secret from environment or keyring
"""

from .azure_cli import AzureCLI, check_az_login, redact_command
from .logger import ColorPrinter, setup_logger
from .secret_store import get_secret

__all__ = [
    'AzureCLI',
    'check_az_login',
    'redact_command',
    'ColorPrinter',
    'setup_logger',
    'get_secret'
]

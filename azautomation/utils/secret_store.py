"""
Secret lookup for credentials and passwords.

Values are never kept as literals in configuration: they come from the
environment or the system keyring, optionally prompting once and storing
the answer back into the keyring.
"""
import os
import getpass
import logging
from typing import Optional

import keyring

SERVICE_NAME = "azautomation"

logger = logging.getLogger("azautomation.secret_store")


def get_secret(name: str, env_var: Optional[str] = None, prompt: bool = False,
               service: str = SERVICE_NAME) -> Optional[str]:
    """Resolve a secret by name

    Lookup order: environment variable, keyring entry, interactive prompt.

    Args:
        name: Keyring username the secret is stored under
        env_var: Environment variable checked first
        prompt: Ask on the terminal when nothing is stored
        service: Keyring service name

    Returns:
        The secret, or None when not found and prompting is disabled
    """
    if env_var:
        value = os.getenv(env_var)
        if value:
            logger.debug(f"Secret '{name}' taken from environment variable {env_var}")
            return value

    value = keyring.get_password(service, name)
    if value:
        logger.debug(f"Secret '{name}' taken from keyring service '{service}'")
        return value

    if not prompt:
        return None

    value = getpass.getpass(f"Enter {name}: ").strip()
    if value:
        keyring.set_password(service, name, value)
        logger.info(f"Secret '{name}' stored in keyring service '{service}'")
    return value or None

"""
Service principal authentication.

Exchanges the service principal secret for an Azure CLI session and selects
the subscription context. SDK and REST consumers get a ClientSecretCredential
for the same identity.
"""
import logging
from typing import Any, Dict, Optional

from azure.identity import ClientSecretCredential

from .exceptions import ConfigurationError
from .models import AzureIdentity
from .utils.azure_cli import AzureCLI
from .utils.logger import ColorPrinter
from .utils.secret_store import get_secret

logger = logging.getLogger("azautomation.auth")

CLIENT_SECRET_ENV = "AZURE_CLIENT_SECRET"


def resolve_client_secret(identity: AzureIdentity, prompt: bool = False) -> str:
    """Return the client secret, looking in the environment and keyring when unset"""
    if identity.client_secret:
        return identity.client_secret
    secret = get_secret(f"client-secret-{identity.client_id}", env_var=CLIENT_SECRET_ENV, prompt=prompt)
    if not secret:
        raise ConfigurationError(
            f"No client secret found in {CLIENT_SECRET_ENV} or keyring", identity.client_id)
    identity.client_secret = secret
    return secret


def _require(identity: AzureIdentity) -> None:
    for attr in ("tenant_id", "client_id"):
        if not getattr(identity, attr):
            raise ConfigurationError("Missing identity setting", attr)


def select_subscription(cli: AzureCLI, subscription: str) -> Optional[Dict[str, Any]]:
    """Set the active subscription and return the resulting account"""
    if not subscription:
        raise ConfigurationError("Missing identity setting", "subscription")
    logger.info(f"Selecting subscription {subscription}")
    cli.run(["account", "set", "--subscription", subscription], output="none")
    account = cli.json(["account", "show"])
    ColorPrinter.print_success(f"Subscription context set to {subscription}")
    return account


def login_service_principal(cli: AzureCLI, identity: AzureIdentity,
                            prompt: bool = False) -> Optional[Dict[str, Any]]:
    """Log the Azure CLI in as a service principal and select its subscription

    Args:
        cli: Azure CLI runner
        identity: Tenant, application id and subscription
        prompt: Ask for the secret on the terminal when it is not stored

    Returns:
        The `az account show` result for the selected subscription
    """
    _require(identity)
    secret = resolve_client_secret(identity, prompt=prompt)

    ColorPrinter.print_info(f"Logging in service principal {identity.client_id} to tenant {identity.tenant_id}")
    cli.run([
        "login", "--service-principal",
        "--username", identity.client_id,
        "--password", secret,
        "--tenant", identity.tenant_id,
    ], output="none")
    logger.info(f"Service principal {identity.client_id} logged in")

    if identity.subscription:
        return select_subscription(cli, identity.subscription)
    return cli.json(["account", "show"])


def get_credential(identity: AzureIdentity, prompt: bool = False) -> ClientSecretCredential:
    """Build an azure-identity credential for the service principal"""
    _require(identity)
    return ClientSecretCredential(
        tenant_id=identity.tenant_id,
        client_id=identity.client_id,
        client_secret=resolve_client_secret(identity, prompt=prompt),
    )

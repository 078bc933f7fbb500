"""
Wait for a remote resource to finish provisioning.

Polls `az <show command> --query provisioningState` until the resource
reports a terminal state or the timeout runs out.
"""
import time
import logging
from typing import Callable, List

from .exceptions import ProvisioningError, ProvisioningTimeoutError
from .utils.azure_cli import AzureCLI, DRY_RUN_VALUE
from .utils.logger import ColorPrinter

logger = logging.getLogger("azautomation.provisioning")

SUCCEEDED = "Succeeded"
FAILED_STATES = {"Failed", "Canceled"}


def wait_for_provisioning(cli: AzureCLI, show_args: List[str], resource: str,
                          interval: float = 30, timeout: float = 1800,
                          sleep: Callable[[float], None] = time.sleep,
                          clock: Callable[[], float] = time.monotonic) -> str:
    """Block until the resource reaches a terminal provisioning state

    Args:
        cli: Azure CLI runner
        show_args: `show` command for the resource, without --query/-o
        resource: Name used in messages
        interval: Seconds between polls
        timeout: Seconds before giving up

    Returns:
        The final state, "Succeeded"
    """
    ColorPrinter.print_info(f"Waiting for {resource} to provision (this can take several minutes)")
    deadline = clock() + timeout
    state = ""
    while True:
        state = cli.tsv(show_args + ["--query", "provisioningState"])
        logger.info(f"{resource} provisioningState: {state or 'unknown'}")

        if cli.dry_run and state == DRY_RUN_VALUE:
            return SUCCEEDED
        if state == SUCCEEDED:
            ColorPrinter.print_success(f"{resource} provisioned")
            return state
        if state in FAILED_STATES:
            raise ProvisioningError(resource, state)
        if clock() >= deadline:
            raise ProvisioningTimeoutError(resource, state, timeout)
        sleep(interval)

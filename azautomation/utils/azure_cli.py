"""
Azure CLI execution.

Every provider call goes through AzureCLI.run so procedures can be driven
against a recording fake in tests and logged with secrets redacted.
"""
import json
import shutil
import logging
import subprocess
from typing import Any, Callable, List, Optional

from ..exceptions import AzureCLIError
from .logger import ColorPrinter

SENSITIVE_FLAGS = {
    "--password", "-p", "--client-secret", "--secret",
    "--cert-password", "--admin-password",
}
REDACTED = "***REDACTED***"
DRY_RUN_VALUE = "<dry-run>"


def redact_command(cmd: List[str]) -> str:
    """Join a command for logging, masking values that follow secret flags"""
    redacted = []
    redact_next = False
    for token in cmd:
        if redact_next:
            redacted.append(REDACTED)
            redact_next = False
            continue
        lower = token.lower()
        if lower in SENSITIVE_FLAGS:
            redacted.append(token)
            redact_next = True
            continue
        if "=" in token:
            key, _value = token.split("=", 1)
            if key.lower() in SENSITIVE_FLAGS:
                redacted.append(f"{key}={REDACTED}")
                continue
        redacted.append(token)
    return " ".join(redacted)


class AzureCLI:
    """Thin runner around the `az` executable

    Failures raise AzureCLIError so the calling procedure stops at the first
    failing command. With dry_run enabled commands are only logged.
    """

    def __init__(self, az_path: Optional[str] = None, dry_run: bool = False,
                 logger: Optional[logging.Logger] = None,
                 runner: Callable[..., subprocess.CompletedProcess] = subprocess.run):
        self.az_path = az_path or shutil.which("az") or "az"
        self.dry_run = dry_run
        self.logger = logger or logging.getLogger("azautomation.azure_cli")
        self._runner = runner

    def run(self, args: List[str], output: str = "json") -> Any:
        """Execute `az <args> -o <output>` and return the parsed result

        Args:
            args: Arguments after `az`
            output: json, tsv or none

        Returns:
            Parsed JSON for json output, stripped text for tsv, None otherwise
        """
        cmd = [self.az_path] + list(args)
        if output and "-o" not in args and "--output" not in args:
            cmd += ["-o", output]
        printable = redact_command(["az"] + cmd[1:])

        if self.dry_run:
            self.logger.info(f"[dry-run] {printable}")
            ColorPrinter.print_info(f"[dry-run] {printable}")
            return DRY_RUN_VALUE if output == "tsv" else None

        self.logger.info(f"Executing: {printable}")
        try:
            result = self._runner(cmd, capture_output=True, text=True, check=False, encoding='utf-8')
        except OSError as e:
            raise AzureCLIError(printable, str(e), returncode=127) from e

        if result.returncode != 0:
            error_output = (result.stderr or "").strip() or (result.stdout or "").strip()
            self.logger.error(f"Command failed ({result.returncode}): {printable}: {error_output}")
            raise AzureCLIError(printable, error_output, returncode=result.returncode)

        stdout = (result.stdout or "").strip()
        if output == "json":
            if not stdout:
                return None
            try:
                return json.loads(stdout)
            except json.JSONDecodeError:
                self.logger.warning(f"Return result is not valid JSON: {stdout[:200]}")
                return stdout
        if output == "tsv":
            return stdout
        return None

    def json(self, args: List[str]) -> Any:
        return self.run(args, output="json")

    def tsv(self, args: List[str]) -> str:
        return self.run(args, output="tsv")


def check_az_login(cli: AzureCLI) -> bool:
    """Check Azure login status"""
    try:
        cli.run(["account", "show"])
    except AzureCLIError:
        ColorPrinter.print_error("Please login using 'az login' first")
        return False
    ColorPrinter.print_success("Azure CLI logged in")
    return True

"""
Custom exceptions for Azure automation

This module contains custom exception classes used throughout the application.
Procedures raise these and let them propagate; only the CLI entry point
catches them.
"""
from typing import List, Optional


class AutomationError(Exception):
    """Base class for all azautomation errors."""


class ConfigurationError(AutomationError):
    """Raised when configuration values are missing or invalid.

    Attributes:
        message -- explanation of the error
        key -- the offending configuration key, if known
    """
    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        self.message = f"{message}: {key}" if key else message
        super().__init__(self.message)


class AzureCLIError(AutomationError):
    """Raised when Azure CLI operations fail.

    Attributes:
        message -- explanation of the error
        command -- the failed Azure CLI command (secrets redacted)
        output -- the error output from Azure CLI
        returncode -- the process exit status
    """
    def __init__(self, command: str, output: str, returncode: int = 1,
                 message: str = "Azure CLI operation failed"):
        self.command = command
        self.output = output
        self.returncode = returncode
        self.message = f"{message}: {command}\nError: {output}"
        super().__init__(self.message)


class PrerequisiteError(AutomationError):
    """Raised when required command line tools are not installed.

    Attributes:
        message -- explanation of the error
        missing -- names of the tools not found on PATH
    """
    def __init__(self, missing: List[str], message: str = "Required tools are not installed"):
        self.missing = list(missing)
        self.message = f"{message}: {', '.join(self.missing)}"
        super().__init__(self.message)


class VersionMismatchError(AutomationError):
    """Raised when an installed tool does not match the expected version.

    Attributes:
        message -- explanation of the error
        tool -- the tool whose version was checked
        expected -- the expected version
        actual -- the version reported by the tool
    """
    def __init__(self, tool: str, expected: str, actual: str,
                 message: str = "Version mismatch"):
        self.tool = tool
        self.expected = expected
        self.actual = actual
        self.message = f"{message}: {tool} reports '{actual}', expected '{expected}'"
        super().__init__(self.message)


class CertificateNotFoundError(AutomationError):
    """Raised when the gateway PFX certificate is missing or still the placeholder.

    Attributes:
        message -- explanation of the error
        path -- the certificate path that was checked
    """
    def __init__(self, path: str, message: str = "Certificate file not found"):
        self.path = path
        self.message = f"{message}: {path}"
        super().__init__(self.message)


class ProvisioningError(AutomationError):
    """Raised when a resource reaches a failed terminal provisioning state.

    Attributes:
        message -- explanation of the error
        resource -- the resource being waited on
        state -- the terminal provisioning state
    """
    def __init__(self, resource: str, state: str, message: str = "Provisioning did not succeed"):
        self.resource = resource
        self.state = state
        self.message = f"{message}: {resource} ended in state '{state}'"
        super().__init__(self.message)


class ProvisioningTimeoutError(ProvisioningError):
    """Raised when a resource does not reach a terminal state in time.

    Attributes:
        timeout -- seconds waited before giving up
    """
    def __init__(self, resource: str, state: str, timeout: float):
        self.timeout = timeout
        super().__init__(resource, state,
                         message=f"Timed out after {timeout:.0f}s waiting for provisioning")


class PipelineExportError(AutomationError):
    """Raised when the pipelines REST listing fails.

    Attributes:
        message -- explanation of the error
        url -- the requested URL
        status_code -- HTTP status returned
        body -- response text
    """
    def __init__(self, url: str, status_code: int, body: str,
                 message: str = "Pipeline listing request failed"):
        self.url = url
        self.status_code = status_code
        self.body = body
        self.message = f"{message}: {url} ({status_code})\n{body}"
        super().__init__(self.message)

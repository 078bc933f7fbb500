"""
Preconditions checked before any Azure call is made.

- Required command line tools are on PATH
- istioctl matches the Istio version the mesh is built for
- The Application Gateway certificate is configured and present
"""
import os
import shutil
import logging
import subprocess
from typing import Callable, Iterable, List, Optional

from .exceptions import CertificateNotFoundError, PrerequisiteError, VersionMismatchError
from .models.mesh import CERT_PLACEHOLDER_PATH
from .utils.logger import ColorPrinter

logger = logging.getLogger("azautomation.prerequisites")

MESH_TOOLS = ("az", "kubectl", "helm", "istioctl")
ISTIO_DOWNLOAD_URL = "https://istio.io/downloadIstio"


def check_tools(tools: Iterable[str] = MESH_TOOLS,
                which: Optional[Callable[[str], Optional[str]]] = None) -> None:
    """Raise PrerequisiteError listing every tool missing from PATH"""
    which = which or shutil.which
    tools = list(tools)
    missing = [tool for tool in tools if not which(tool)]
    if missing:
        for tool in missing:
            logger.error(f"{tool} is not installed")
        raise PrerequisiteError(missing)
    logger.info(f"Found required tools: {', '.join(tools)}")


def parse_istioctl_version(output: str) -> str:
    """Pull the version string out of `istioctl version --remote=false` output"""
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    for line in lines:
        if "Istio Control Plane" in line:
            return line.split()[-1]
    for line in lines:
        if "version" in line.lower():
            return line.split()[-1]
    return lines[0].split()[-1] if lines else ""


def get_istioctl_version(runner: Optional[Callable[..., subprocess.CompletedProcess]] = None) -> str:
    runner = runner or subprocess.run
    result = runner(["istioctl", "version", "--remote=false"],
                    capture_output=True, text=True, check=False)
    if result.returncode != 0:
        logger.warning(f"istioctl version failed: {result.stderr.strip()}")
        return ""
    return parse_istioctl_version(result.stdout)


def confirm(question: str) -> bool:
    """Ask a y/N question on the terminal"""
    try:
        answer = input(f"{question} (y/N): ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def check_istio_version(expected: str, actual: str,
                        ask: Optional[Callable[[str], bool]] = confirm) -> None:
    """Warn on a version mismatch and stop unless the operator accepts it

    Args:
        expected: Istio version the mesh is built for
        actual: Version reported by istioctl
        ask: Confirmation callback; None means non-interactive, so a mismatch aborts
    """
    if actual and expected in actual:
        logger.info(f"istioctl version {actual} matches {expected}")
        return

    ColorPrinter.print_warning(
        f"istioctl version ({actual or 'unknown'}) does not match desired Istio version ({expected}).")
    ColorPrinter.print_warning(
        f"Download a matching release with: curl -L {ISTIO_DOWNLOAD_URL} | ISTIO_VERSION={expected} sh -")
    logger.warning(f"istioctl version mismatch: {actual!r} != {expected!r}")

    if ask is not None and ask("Do you want to continue anyway?"):
        logger.warning("Continuing with mismatched istioctl version")
        return
    raise VersionMismatchError("istioctl", expected, actual)


def check_certificate(path: str) -> None:
    """The certificate must be configured (not the placeholder) and exist on disk"""
    if path == CERT_PLACEHOLDER_PATH:
        raise CertificateNotFoundError(
            path, message="Certificate path is still the placeholder, set gateway.cert_path")
    if not os.path.isfile(path):
        raise CertificateNotFoundError(path)
    logger.info(f"Certificate found at {path}")


def check_mesh_prerequisites(istio_version: str, cert_path: str,
                             ask: Optional[Callable[[str], bool]] = confirm,
                             which: Optional[Callable[[str], Optional[str]]] = None,
                             runner: Optional[Callable[..., subprocess.CompletedProcess]] = None) -> List[str]:
    """Run every mesh precondition in order, raising on the first one not met

    Returns:
        Names of the checks that passed
    """
    ColorPrinter.print_info(f"Checking prerequisites ({', '.join(MESH_TOOLS)})")
    check_tools(MESH_TOOLS, which=which)
    check_istio_version(istio_version, get_istioctl_version(runner), ask=ask)
    check_certificate(cert_path)
    ColorPrinter.print_success("All prerequisites met")
    return ["tools", "istio_version", "certificate"]

#!/usr/bin/env python3
"""
Command line entry point for Azure automation.

Subcommands:
    login              Log in as the service principal and select the subscription
    check              Verify mesh prerequisites (tools, istioctl version, certificate)
    vm create          Create and tag one VM per machine name
    pipelines export   Export the pipeline list to an Excel workbook
    mesh setup         Network, AKS clusters, NSG rules and the WAF Application Gateway
    mesh gateway       Only the WAF Application Gateway
"""
import os
import sys
import logging
import argparse
from datetime import datetime
from typing import List, Optional

from . import __version__
from .app_gateway import resolve_cert_password, setup_app_gateway
from .auth import login_service_principal
from .config import load_config
from .exceptions import AutomationError
from .mesh_network import setup_mesh_network
from .pipeline_export import export_pipelines
from .prerequisites import check_certificate, check_mesh_prerequisites, confirm
from .utils.azure_cli import AzureCLI, check_az_login
from .utils.logger import ColorPrinter, setup_logger
from .vm_provisioner import provision_vms

DEFAULT_LOG_DIR = "log"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="azautomation",
        description="Azure automation: login, VM provisioning, pipeline export and mesh network setup",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", "-c", help="JSON configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    parser.add_argument("--dry-run", action="store_true",
                        help="Log the Azure CLI commands without running them")
    parser.add_argument("--log-file", help="Log file path (default: log/azautomation_<date>.log)")
    parser.add_argument("--no-prompt", action="store_true",
                        help="Never ask for secrets or confirmations on the terminal")

    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser("login", help="Log in as the service principal")
    login.add_argument("--subscription", help="Subscription name or id to select")

    subparsers.add_parser("check", help="Verify mesh prerequisites")

    vm = subparsers.add_parser("vm", help="Virtual machine provisioning")
    vm_sub = vm.add_subparsers(dest="vm_command", required=True)
    vm_create = vm_sub.add_parser("create", help="Create and tag one VM per name")
    vm_create.add_argument("names", nargs="*", help="Machine names (default: vm.names from config)")
    vm_create.add_argument("--variant", choices=["linux", "windows"], help="Image and login variant")
    vm_create.add_argument("--resource-group", "-g", help="Target resource group")
    vm_create.add_argument("--size", help="VM size")

    pipelines = subparsers.add_parser("pipelines", help="Pipeline metadata")
    pipelines_sub = pipelines.add_subparsers(dest="pipelines_command", required=True)
    export = pipelines_sub.add_parser("export", help="Export pipelines to Excel")
    export.add_argument("--organization", help="Azure DevOps organization")
    export.add_argument("--project", help="Azure DevOps project")
    export.add_argument("--output", "-o", help="Output workbook path")
    export.add_argument("--auth", choices=["pat", "service_principal"], help="Authentication method")

    mesh = subparsers.add_parser("mesh", help="Multi-cluster mesh network")
    mesh_sub = mesh.add_subparsers(dest="mesh_command", required=True)
    mesh_setup = mesh_sub.add_parser("setup", help="Full network, clusters and gateway setup")
    mesh_setup.add_argument("--yes", "-y", action="store_true",
                            help="Continue on an istioctl version mismatch without asking")
    mesh_setup.add_argument("--skip-gateway", action="store_true",
                            help="Stop after the network, clusters and NSG rules")
    mesh_sub.add_parser("gateway", help="Only deploy the WAF Application Gateway")

    return parser


def _default_log_file() -> str:
    return os.path.join(DEFAULT_LOG_DIR, f"azautomation_{datetime.now().strftime('%Y%m%d')}.log")


def _require_login(cli: AzureCLI) -> None:
    """Stop before provisioning when the Azure CLI has no active session"""
    if cli.dry_run:
        return
    if not check_az_login(cli):
        raise AutomationError("Azure CLI is not logged in; run 'azautomation login' or 'az login'")


def run(args: argparse.Namespace, logger: logging.Logger) -> None:
    config = load_config(args.config)
    cli = AzureCLI(dry_run=args.dry_run, logger=logging.getLogger("azautomation.azure_cli"))
    prompt = not args.no_prompt and sys.stdin.isatty()

    if args.command == "login":
        if args.subscription:
            config.identity.subscription = args.subscription
        account = login_service_principal(cli, config.identity, prompt=prompt)
        if account:
            ColorPrinter.print_info(f"Active account: {account.get('name', '')} ({account.get('id', '')})")

    elif args.command == "check":
        check_mesh_prerequisites(config.mesh.istio_version, config.gateway.cert_path,
                                 ask=confirm if prompt else None)

    elif args.command == "vm":
        if args.names:
            config.vm.names = args.names
        if args.variant:
            config.vm.variant = args.variant
        if args.resource_group:
            config.vm.resource_group = args.resource_group
        if args.size:
            config.vm.size = args.size
        _require_login(cli)
        created = provision_vms(cli, config.vm, prompt=prompt)
        ColorPrinter.print_success(f"Provisioned {len(created)} VMs")

    elif args.command == "pipelines":
        for attr in ("organization", "project", "auth"):
            if getattr(args, attr):
                setattr(config.pipelines, attr, getattr(args, attr))
        if args.output:
            config.pipelines.output_path = args.output
        export_pipelines(config.pipelines, identity=config.identity, prompt=prompt)

    elif args.command == "mesh":
        with_gateway = args.mesh_command == "gateway" or not args.skip_gateway
        if args.mesh_command == "setup":
            ask = (lambda question: True) if args.yes else (confirm if prompt else None)
            check_mesh_prerequisites(config.mesh.istio_version, config.gateway.cert_path, ask=ask)
        else:
            check_certificate(config.gateway.cert_path)
        # Every input is settled before the first resource is created
        cert_password = resolve_cert_password(config.gateway, prompt=prompt) if with_gateway else None
        _require_login(cli)
        if args.mesh_command == "setup":
            setup_mesh_network(cli, config.mesh)
        if with_gateway:
            setup_app_gateway(cli, config.mesh, config.gateway, prompt=prompt, cert_password=cert_password)

    logger.info(f"Command '{args.command}' completed")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point function"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logger = setup_logger(args.log_file or _default_log_file(), verbose=args.verbose)
    logger.info(f"azautomation {__version__} starting: {args.command}")

    try:
        run(args, logger)
    except KeyboardInterrupt:
        ColorPrinter.print_warning("Operation cancelled by user")
        logger.warning("Operation cancelled by user")
        return 130
    except AutomationError as e:
        ColorPrinter.print_error(str(e))
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except Exception as e:
        ColorPrinter.print_error(f"Critical error: {str(e)}")
        logger.exception("Unhandled exception")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

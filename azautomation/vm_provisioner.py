"""
VM provisioning over a fixed list of machine names.

For every name, in order: one `az vm create` call, then one `az resource tag`
call on the new machine. Per-machine resource names are derived from the
machine name. The first failing call stops the run.
"""
import re
import logging
from typing import Dict, List, Optional

from tqdm import tqdm

from .exceptions import ConfigurationError
from .models.vm import DerivedVMNames, VMSettings, VARIANTS, VARIANT_WINDOWS
from .utils.azure_cli import AzureCLI
from .utils.logger import ColorPrinter
from .utils.secret_store import get_secret

logger = logging.getLogger("azautomation.vm_provisioner")

VM_RESOURCE_TYPE = "Microsoft.Compute/virtualMachines"
ADMIN_PASSWORD_ENV = "AZURE_VM_ADMIN_PASSWORD"
DNS_LABEL_MAX = 63
DNS_LABEL_MIN = 3

_INVALID_DNS_CHARS = re.compile(r"[^a-z0-9-]")
_DASH_RUNS = re.compile(r"-{2,}")


def derive_dns_label(machine_name: str) -> str:
    """Turn a machine name into a public IP DNS label

    Lower-cases, replaces anything outside [a-z0-9-] with '-', collapses and
    trims dashes, prefixes 'vm-' when the label does not start with a letter
    and keeps the result within 3..63 characters.
    """
    label = _INVALID_DNS_CHARS.sub("-", machine_name.strip().lower())
    label = _DASH_RUNS.sub("-", label).strip("-")
    if not label:
        raise ConfigurationError("Machine name has no usable DNS characters", machine_name)
    if not label[0].isalpha():
        label = f"vm-{label}"
    label = label[:DNS_LABEL_MAX].rstrip("-")
    if len(label) < DNS_LABEL_MIN:
        label = f"{label}-vm"
    return label


def derive_names(machine_name: str) -> DerivedVMNames:
    name = machine_name.strip()
    return DerivedVMNames(
        vm_name=name,
        os_disk_name=f"{name}-osdisk",
        public_ip_name=f"{name}-ip",
        nsg_name=f"{name}-nsg",
        dns_label=derive_dns_label(name),
    )


def validate_settings(settings: VMSettings) -> List[DerivedVMNames]:
    """Check the variant and names, returning the derived names in order

    Every name is derived up front so an unusable name or a colliding VM name
    or DNS label is rejected before the first Azure call.
    """
    if settings.variant not in VARIANTS:
        raise ConfigurationError(f"Unknown VM variant {settings.variant!r}", "vm.variant")
    if not settings.names:
        raise ConfigurationError("No machine names configured", "vm.names")
    if any(not name or not name.strip() for name in settings.names):
        raise ConfigurationError("Machine names must not be empty", "vm.names")

    derived = [derive_names(name) for name in settings.names]
    seen_vms: Dict[str, str] = {}
    seen_labels: Dict[str, str] = {}
    for names in derived:
        vm_key = names.vm_name.lower()
        if vm_key in seen_vms:
            raise ConfigurationError(f"Duplicate machine name {names.vm_name!r}", "vm.names")
        if names.dns_label in seen_labels:
            raise ConfigurationError(
                f"Machine names {seen_labels[names.dns_label]!r} and {names.vm_name!r} "
                f"share the DNS label {names.dns_label!r}", "vm.names")
        seen_vms[vm_key] = names.vm_name
        seen_labels[names.dns_label] = names.vm_name
    return derived


def build_create_args(settings: VMSettings, names: DerivedVMNames,
                      admin_password: Optional[str] = None) -> List[str]:
    args = [
        "vm", "create",
        "--resource-group", settings.resource_group,
        "--name", names.vm_name,
        "--location", settings.location,
        "--image", settings.resolved_image(),
        "--size", settings.size,
        "--admin-username", settings.admin_username,
        "--vnet-name", settings.vnet_name,
        "--subnet", settings.subnet_name,
        "--nsg", names.nsg_name,
        "--os-disk-name", names.os_disk_name,
        "--public-ip-address", names.public_ip_name,
        "--public-ip-address-dns-name", names.dns_label,
    ]
    if settings.variant == VARIANT_WINDOWS:
        args += ["--admin-password", admin_password or ""]
    else:
        args += ["--authentication-type", "ssh", "--generate-ssh-keys"]
    return args


def build_tag_args(settings: VMSettings, names: DerivedVMNames) -> List[str]:
    tags = [f"{key}={value}" for key, value in settings.tags.items()]
    return [
        "resource", "tag",
        "--resource-group", settings.resource_group,
        "--name", names.vm_name,
        "--resource-type", VM_RESOURCE_TYPE,
        "--is-incremental",
        "--tags", *tags,
    ]


def provision_vms(cli: AzureCLI, settings: VMSettings, prompt: bool = False,
                  show_progress: bool = True) -> List[Dict[str, str]]:
    """Create and tag one VM per machine name

    Args:
        cli: Azure CLI runner
        settings: Names, variant, size and placement
        prompt: Ask for the Windows admin password when it is not stored
        show_progress: Display a tqdm progress bar

    Returns:
        One summary dict per created machine
    """
    derived = validate_settings(settings)

    admin_password = None
    if settings.variant == VARIANT_WINDOWS:
        admin_password = get_secret("vm-admin-password", env_var=ADMIN_PASSWORD_ENV, prompt=prompt)
        if not admin_password:
            raise ConfigurationError(
                f"No admin password found in {ADMIN_PASSWORD_ENV} or keyring", "vm-admin-password")

    ColorPrinter.print_info(
        f"Provisioning {len(settings.names)} {settings.variant} VMs in {settings.resource_group}")
    created = []
    for names in tqdm(derived, desc="Provisioning VMs", unit="vm", disable=not show_progress):
        logger.info(f"Creating VM {names.vm_name} (dns label {names.dns_label})")
        result = cli.json(build_create_args(settings, names, admin_password))

        logger.info(f"Tagging VM {names.vm_name}")
        cli.run(build_tag_args(settings, names), output="none")

        details = result if isinstance(result, dict) else {}
        created.append({
            "name": names.vm_name,
            "dns_label": names.dns_label,
            "public_ip": details.get("publicIpAddress", ""),
            "fqdn": details.get("fqdns", ""),
        })
        ColorPrinter.print_success(f"VM {names.vm_name} created and tagged")

    return created

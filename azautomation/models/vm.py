from dataclasses import dataclass, field
from typing import Dict, List

VARIANT_LINUX = "linux"
VARIANT_WINDOWS = "windows"
VARIANTS = (VARIANT_LINUX, VARIANT_WINDOWS)

DEFAULT_IMAGES = {
    VARIANT_LINUX: "Ubuntu2204",
    VARIANT_WINDOWS: "Win2022Datacenter",
}


@dataclass
class VMSettings:
    """Inputs for one provisioning run over a fixed list of machine names"""
    resource_group: str = "rg-automation-vms"
    location: str = "westeurope"
    names: List[str] = field(default_factory=list)
    variant: str = VARIANT_LINUX
    size: str = "Standard_B2s"
    image: str = ""
    admin_username: str = "azureuser"
    vnet_name: str = "vm-vnet"
    subnet_name: str = "vm-subnet"
    tags: Dict[str, str] = field(default_factory=lambda: {"CreatedBy": "azautomation"})

    def resolved_image(self) -> str:
        return self.image or DEFAULT_IMAGES.get(self.variant, DEFAULT_IMAGES[VARIANT_LINUX])


@dataclass(frozen=True)
class DerivedVMNames:
    """Per-machine resource names derived from the machine name"""
    vm_name: str
    os_disk_name: str
    public_ip_name: str
    nsg_name: str
    dns_label: str

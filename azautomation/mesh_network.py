"""
Multi-cluster mesh network setup.

Builds the shared-network topology for a two-cluster service mesh:
1. Resource group and virtual network
2. One subnet per cluster plus a dedicated Application Gateway subnet
3. One AKS cluster per subnet (Azure CNI, managed identity)
4. kubectl credentials registered under the mesh context names
5. NSG rules opening the east-west gateway port between the cluster subnets

Calls run strictly in this order; the first failure stops the run.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .models.mesh import ClusterSettings, MeshSettings, SubnetSettings
from .utils.azure_cli import AzureCLI
from .utils.logger import ColorPrinter

logger = logging.getLogger("azautomation.mesh_network")

EAST_WEST_RULE_PREFIX = "AllowIstioEastWest"


@dataclass
class MeshNetworkResult:
    subnet_ids: Dict[str, str] = field(default_factory=dict)
    node_resource_groups: Dict[str, str] = field(default_factory=dict)
    nsg_name: str = ""
    contexts: List[str] = field(default_factory=list)
    nsg_rules: List[str] = field(default_factory=list)


def create_network(cli: AzureCLI, settings: MeshSettings) -> Dict[str, str]:
    """Create the resource group, virtual network and all subnets

    Returns:
        Subnet name -> subnet resource id
    """
    ColorPrinter.print_step(f"Creating resource group {settings.resource_group} in {settings.location}", logger)
    cli.run(["group", "create", "--name", settings.resource_group, "--location", settings.location])

    ColorPrinter.print_step(f"Creating virtual network {settings.vnet_name} ({settings.vnet_address_prefix})", logger)
    cli.run([
        "network", "vnet", "create",
        "--resource-group", settings.resource_group,
        "--name", settings.vnet_name,
        "--address-prefix", settings.vnet_address_prefix,
    ])

    subnets: List[SubnetSettings] = [c.subnet for c in settings.clusters] + [settings.gateway_subnet]
    subnet_ids = {}
    for subnet in subnets:
        ColorPrinter.print_step(f"Creating subnet {subnet.name} ({subnet.address_prefix})", logger)
        subnet_ids[subnet.name] = cli.tsv([
            "network", "vnet", "subnet", "create",
            "--resource-group", settings.resource_group,
            "--vnet-name", settings.vnet_name,
            "--name", subnet.name,
            "--address-prefix", subnet.address_prefix,
            "--query", "id",
        ])
        logger.info(f"Subnet {subnet.name} id: {subnet_ids[subnet.name]}")
    return subnet_ids


def create_cluster(cli: AzureCLI, settings: MeshSettings, cluster: ClusterSettings, subnet_id: str) -> None:
    ColorPrinter.print_step(f"Creating AKS cluster {cluster.name} in subnet {cluster.subnet.name}", logger)
    cli.run([
        "aks", "create",
        "--resource-group", settings.resource_group,
        "--name", cluster.name,
        "--location", settings.location,
        "--kubernetes-version", settings.kubernetes_version,
        "--node-count", str(settings.node_count),
        "--node-vm-size", settings.node_vm_size,
        "--generate-ssh-keys",
        "--network-plugin", "azure",
        "--vnet-subnet-id", subnet_id,
        "--enable-managed-identity",
        "--yes",
    ])


def get_credentials(cli: AzureCLI, settings: MeshSettings, cluster: ClusterSettings) -> str:
    ColorPrinter.print_step(f"Getting credentials for {cluster.name} as context {cluster.mesh_name}", logger)
    cli.run([
        "aks", "get-credentials",
        "--resource-group", settings.resource_group,
        "--name", cluster.name,
        "--context", cluster.mesh_name,
        "--overwrite-existing",
    ], output="none")
    return cluster.mesh_name


def get_node_resource_group(cli: AzureCLI, settings: MeshSettings, cluster: ClusterSettings) -> str:
    return cli.tsv([
        "aks", "show",
        "--resource-group", settings.resource_group,
        "--name", cluster.name,
        "--query", "nodeResourceGroup",
    ])


def find_nsg_name(cli: AzureCLI, node_resource_group: str) -> str:
    """Name of the first NSG in an AKS node resource group (aks-agentpool-XXXX-nsg)"""
    return cli.tsv([
        "network", "nsg", "list",
        "--resource-group", node_resource_group,
        "--query", "[0].name",
    ])


def create_east_west_rule(cli: AzureCLI, settings: MeshSettings, node_resource_group: str,
                          nsg_name: str, rule_name: str, source_prefix: str,
                          destination_prefix: str, priority: int) -> str:
    ColorPrinter.print_step(f"Adding NSG rule {rule_name} ({source_prefix} -> {destination_prefix}:{settings.east_west_port})", logger)
    cli.run([
        "network", "nsg", "rule", "create",
        "--resource-group", node_resource_group,
        "--nsg-name", nsg_name,
        "--name", rule_name,
        "--priority", str(priority),
        "--direction", "Inbound",
        "--access", "Allow",
        "--protocol", "Tcp",
        "--destination-port-ranges", str(settings.east_west_port),
        "--source-address-prefixes", source_prefix,
        "--destination-address-prefixes", destination_prefix,
    ])
    return rule_name


def setup_mesh_network(cli: AzureCLI, settings: MeshSettings) -> MeshNetworkResult:
    """Run the full network, cluster and NSG sequence

    Args:
        cli: Azure CLI runner
        settings: Topology settings

    Returns:
        Ids and names discovered along the way
    """
    result = MeshNetworkResult()
    result.subnet_ids = create_network(cli, settings)

    for cluster in settings.clusters:
        create_cluster(cli, settings, cluster, result.subnet_ids[cluster.subnet.name])

    for cluster in settings.clusters:
        result.contexts.append(get_credentials(cli, settings, cluster))

    ColorPrinter.print_step("Identifying AKS node resource groups and NSG names", logger)
    for cluster in settings.clusters:
        result.node_resource_groups[cluster.name] = get_node_resource_group(cli, settings, cluster)
    first = settings.clusters[0]
    # AKS names the agent pool NSG identically in every node resource group
    result.nsg_name = find_nsg_name(cli, result.node_resource_groups[first.name])
    logger.info(f"Node resource groups: {result.node_resource_groups}, NSG: {result.nsg_name}")

    # Each cluster accepts east-west traffic from every other cluster's subnet
    for index, source in enumerate(settings.clusters):
        priority = settings.nsg_rule_priority + index
        for target in settings.clusters:
            if target is source:
                continue
            rule_name = f"{EAST_WEST_RULE_PREFIX}From{source.mesh_name.capitalize()}"
            result.nsg_rules.append(create_east_west_rule(
                cli, settings, result.node_resource_groups[target.name], result.nsg_name,
                rule_name, source.subnet.address_prefix, target.subnet.address_prefix, priority))

    ColorPrinter.print_success(
        f"Mesh network ready: {len(settings.clusters)} clusters in {settings.vnet_name}")
    return result

from dataclasses import dataclass, field
from typing import Dict, List

CERT_PLACEHOLDER_PATH = "./path/to/your/certificate.pfx"


@dataclass
class SubnetSettings:
    name: str
    address_prefix: str


@dataclass
class ClusterSettings:
    """An AKS cluster and the kubectl context it is registered under"""
    name: str
    mesh_name: str
    subnet: SubnetSettings


@dataclass
class MeshSettings:
    """Shared-network topology for a two-cluster service mesh"""
    resource_group: str = "rg-aks-istio-multicluster-06"
    location: str = "westeurope"
    vnet_name: str = "aks-istio-vnet"
    vnet_address_prefix: str = "10.1.0.0/16"
    clusters: List[ClusterSettings] = field(default_factory=lambda: [
        ClusterSettings("aks-istio-c1", "cluster1", SubnetSettings("aks-subnet-c1", "10.1.0.0/24")),
        ClusterSettings("aks-istio-c2", "cluster2", SubnetSettings("aks-subnet-c2", "10.1.1.0/24")),
    ])
    gateway_subnet: SubnetSettings = field(
        default_factory=lambda: SubnetSettings("appgw-subnet", "10.1.2.0/24"))
    kubernetes_version: str = "1.32.5"
    istio_version: str = "1.21.0"
    node_vm_size: str = "Standard_DS2_v2"
    node_count: int = 1
    mesh_id: str = "mesh1"
    network_name: str = "network1"
    east_west_port: int = 15443
    nsg_rule_priority: int = 100


@dataclass
class GatewaySettings:
    """Application Gateway with a WAF policy in front of the mesh ingress"""
    name: str = "istio-app-gateway"
    sku: str = "WAF_v2"
    capacity: int = 2
    frontend_ip_name: str = "appGwPublicIp"
    listener_name: str = "appGwHttpsListener"
    backend_pool_name: str = "istioBackendPool"
    http_setting_name: str = "istioHttpSetting"
    rule_name: str = "appGwRoutingRule"
    ssl_cert_name: str = "appGwCert"
    cert_path: str = "./app-gw/certificate.pfx"
    cert_password: str = ""
    waf_policy_name: str = ""
    waf_policy_type: str = "OWASP"
    waf_policy_version: str = "3.2"
    backend_server: str = "10.0.137.31"
    host_names: List[str] = field(default_factory=lambda: ["*"])
    frontend_port: int = 443
    backend_port: int = 80
    backend_timeout: int = 30
    default_rule_priority: int = 1
    rule_priority: int = 10
    zones: List[str] = field(default_factory=lambda: ["1", "2", "3"])
    tags: Dict[str, str] = field(default_factory=lambda: {"Purpose": "IstioIngressWAF"})
    provisioning_timeout: int = 1800
    poll_interval: int = 30

    def resolved_waf_policy_name(self) -> str:
        return self.waf_policy_name or f"{self.name}-waf-policy"

"""
Application Gateway with WAF in front of the mesh ingress gateway.

Sequence:
1. WAF policy
2. Static public IP
3. Application Gateway (WAF_v2), started without waiting
4. Poll until the gateway finishes provisioning
5. SSL certificate, HTTPS listener, backend pool, HTTP settings, routing rule
6. Report the gateway's public IP
"""
import logging
from typing import Dict, List, Optional

from .exceptions import ConfigurationError
from .models.mesh import GatewaySettings, MeshSettings
from .prerequisites import check_certificate
from .provisioning import wait_for_provisioning
from .utils.azure_cli import AzureCLI
from .utils.logger import ColorPrinter
from .utils.secret_store import get_secret

logger = logging.getLogger("azautomation.app_gateway")

CERT_PASSWORD_ENV = "APP_GW_CERT_PASSWORD"


def resolve_cert_password(gateway: GatewaySettings, prompt: bool = False) -> str:
    if gateway.cert_password:
        return gateway.cert_password
    password = get_secret("app-gw-cert-password", env_var=CERT_PASSWORD_ENV, prompt=prompt)
    if not password:
        raise ConfigurationError(
            f"No certificate password found in {CERT_PASSWORD_ENV} or keyring", "app-gw-cert-password")
    gateway.cert_password = password
    return password


def _tags(tags: Dict[str, str]) -> List[str]:
    return [f"{key}={value}" for key, value in tags.items()]


def create_waf_policy(cli: AzureCLI, mesh: MeshSettings, gateway: GatewaySettings) -> str:
    name = gateway.resolved_waf_policy_name()
    ColorPrinter.print_step(f"Creating WAF policy {name} ({gateway.waf_policy_type} {gateway.waf_policy_version})", logger)
    cli.run([
        "network", "application-gateway", "waf-policy", "create",
        "--name", name,
        "--resource-group", mesh.resource_group,
        "--location", mesh.location,
        "--type", gateway.waf_policy_type,
        "--version", gateway.waf_policy_version,
    ])
    return name


def create_public_ip(cli: AzureCLI, mesh: MeshSettings, gateway: GatewaySettings) -> None:
    ColorPrinter.print_step(f"Creating public IP {gateway.frontend_ip_name}", logger)
    cli.run([
        "network", "public-ip", "create",
        "--resource-group", mesh.resource_group,
        "--name", gateway.frontend_ip_name,
        "--location", mesh.location,
        "--allocation-method", "Static",
        "--sku", "Standard",
        "--zones", *gateway.zones,
    ])


def create_gateway(cli: AzureCLI, mesh: MeshSettings, gateway: GatewaySettings, waf_policy: str) -> None:
    ColorPrinter.print_step(f"Creating Application Gateway {gateway.name} with {gateway.sku} SKU", logger)
    cli.run([
        "network", "application-gateway", "create",
        "--resource-group", mesh.resource_group,
        "--name", gateway.name,
        "--location", mesh.location,
        "--vnet-name", mesh.vnet_name,
        "--subnet", mesh.gateway_subnet.name,
        "--sku", gateway.sku,
        "--capacity", str(gateway.capacity),
        "--public-ip-address", gateway.frontend_ip_name,
        "--waf-policy", waf_policy,
        "--zones", *gateway.zones,
        "--tags", *_tags(gateway.tags),
        "--priority", str(gateway.default_rule_priority),
        "--no-wait",
    ], output="none")


def configure_https_routing(cli: AzureCLI, mesh: MeshSettings, gateway: GatewaySettings,
                            cert_password: str) -> None:
    """Upload the certificate and wire listener -> rule -> backend pool"""
    common = ["--gateway-name", gateway.name, "--resource-group", mesh.resource_group]

    ColorPrinter.print_step(f"Uploading certificate {gateway.cert_path}", logger)
    cli.run(["network", "application-gateway", "ssl-cert", "create", *common,
             "--name", gateway.ssl_cert_name,
             "--cert-file", gateway.cert_path,
             "--cert-password", cert_password])

    ColorPrinter.print_step(f"Adding HTTPS listener {gateway.listener_name}", logger)
    cli.run(["network", "application-gateway", "http-listener", "create", *common,
             "--name", gateway.listener_name,
             "--frontend-ip", gateway.frontend_ip_name,
             "--frontend-port", str(gateway.frontend_port),
             "--ssl-cert", gateway.ssl_cert_name,
             "--host-names", *gateway.host_names])

    ColorPrinter.print_step(f"Creating backend pool {gateway.backend_pool_name} -> {gateway.backend_server}", logger)
    cli.run(["network", "application-gateway", "address-pool", "create", *common,
             "--name", gateway.backend_pool_name,
             "--servers", gateway.backend_server])

    ColorPrinter.print_step(f"Creating HTTP settings {gateway.http_setting_name}", logger)
    cli.run(["network", "application-gateway", "http-settings", "create", *common,
             "--name", gateway.http_setting_name,
             "--port", str(gateway.backend_port),
             "--protocol", "Http",
             "--cookie-based-affinity", "Disabled",
             "--timeout", str(gateway.backend_timeout)])

    ColorPrinter.print_step(f"Creating routing rule {gateway.rule_name}", logger)
    cli.run(["network", "application-gateway", "rule", "create", *common,
             "--name", gateway.rule_name,
             "--http-listener", gateway.listener_name,
             "--backend-address-pool", gateway.backend_pool_name,
             "--http-settings", gateway.http_setting_name,
             "--rule-type", "Basic",
             "--priority", str(gateway.rule_priority)])


def get_public_ip(cli: AzureCLI, mesh: MeshSettings, gateway: GatewaySettings) -> str:
    return cli.tsv([
        "network", "public-ip", "show",
        "--resource-group", mesh.resource_group,
        "--name", gateway.frontend_ip_name,
        "--query", "ipAddress",
    ])


def setup_app_gateway(cli: AzureCLI, mesh: MeshSettings, gateway: GatewaySettings,
                      prompt: bool = False, cert_password: Optional[str] = None,
                      wait_kwargs: Optional[Dict] = None) -> str:
    """Deploy the WAF-protected Application Gateway

    The certificate file and password are checked before any Azure call.

    Args:
        cli: Azure CLI runner
        mesh: Network the gateway lives in
        gateway: Gateway, listener and WAF settings
        prompt: Ask for the certificate password when it is not stored
        cert_password: Password resolved earlier by the caller, looked up when omitted
        wait_kwargs: Extra arguments for wait_for_provisioning (interval, timeout, sleep)

    Returns:
        Public IP address of the gateway
    """
    check_certificate(gateway.cert_path)
    if not cert_password:
        cert_password = resolve_cert_password(gateway, prompt=prompt)

    waf_policy = create_waf_policy(cli, mesh, gateway)
    create_public_ip(cli, mesh, gateway)
    create_gateway(cli, mesh, gateway, waf_policy)

    wait_options = {"interval": gateway.poll_interval, "timeout": gateway.provisioning_timeout}
    wait_options.update(wait_kwargs or {})
    wait_for_provisioning(
        cli,
        ["network", "application-gateway", "show",
         "--name", gateway.name, "--resource-group", mesh.resource_group],
        resource=f"Application Gateway {gateway.name}",
        **wait_options)

    configure_https_routing(cli, mesh, gateway, cert_password)

    public_ip = get_public_ip(cli, mesh, gateway)
    ColorPrinter.print_success(f"Application Gateway setup complete. Public IP: {public_ip}")
    logger.info(f"Application Gateway {gateway.name} public IP: {public_ip}")
    return public_ip

"""
Configuration loading.

Defaults live on the model dataclasses. A JSON file can override any field
per section, and a handful of environment variables override identity and
pipeline settings last. Secrets are only ever taken from the environment or
the keyring, never from the file.
"""
import os
import json
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError
from .models import (
    AzureIdentity, VMSettings, MeshSettings, ClusterSettings, SubnetSettings,
    GatewaySettings, PipelineExportSettings,
)

logger = logging.getLogger("azautomation.config")

SECTIONS = ("identity", "vm", "mesh", "gateway", "pipelines")
SECRET_KEYS = {"client_secret", "cert_password"}

# Environment variable -> (section, attribute)
ENV_OVERRIDES = {
    "AZURE_SUBSCRIPTION": ("identity", "subscription"),
    "AZURE_TENANT_ID": ("identity", "tenant_id"),
    "AZURE_CLIENT_ID": ("identity", "client_id"),
    "AZURE_DEVOPS_ORG": ("pipelines", "organization"),
    "AZURE_DEVOPS_PROJECT": ("pipelines", "project"),
}


@dataclass
class AutomationConfig:
    identity: AzureIdentity = field(default_factory=AzureIdentity)
    vm: VMSettings = field(default_factory=VMSettings)
    mesh: MeshSettings = field(default_factory=MeshSettings)
    gateway: GatewaySettings = field(default_factory=GatewaySettings)
    pipelines: PipelineExportSettings = field(default_factory=PipelineExportSettings)


def _check_type(key: str, current: Any, value: Any) -> None:
    """Reject a value whose JSON type differs from the field default's type"""
    if isinstance(current, bool):
        ok = isinstance(value, bool)
    elif isinstance(current, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif isinstance(current, list):
        ok = isinstance(value, list) and all(isinstance(item, str) for item in value)
    elif isinstance(current, dict):
        ok = isinstance(value, dict)
    elif isinstance(current, str):
        ok = isinstance(value, str)
    else:
        ok = True
    if not ok:
        raise ConfigurationError(
            f"Expected {type(current).__name__}, got {type(value).__name__}", key)


def _apply_section(target: Any, section: str, values: Dict[str, Any]) -> None:
    """Copy values onto a dataclass instance, rejecting unknown keys and wrong types"""
    if not isinstance(values, dict):
        raise ConfigurationError("Config section must be an object", section)
    allowed = {f.name for f in fields(target)}
    for key, value in values.items():
        if key not in allowed:
            raise ConfigurationError("Unknown config key", f"{section}.{key}")
        if key in SECRET_KEYS:
            raise ConfigurationError(
                "Secrets must come from the environment or keyring, not the config file",
                f"{section}.{key}")
        _check_type(f"{section}.{key}", getattr(target, key), value)
        setattr(target, key, value)


def _parse_clusters(raw: Any) -> list:
    if not isinstance(raw, list) or not raw:
        raise ConfigurationError("mesh.clusters must be a non-empty list", "mesh.clusters")
    clusters = []
    for item in raw:
        try:
            subnet = SubnetSettings(item["subnet"]["name"], item["subnet"]["address_prefix"])
            clusters.append(ClusterSettings(item["name"], item["mesh_name"], subnet))
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Invalid cluster entry {item!r}", "mesh.clusters") from e
    return clusters


def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> AutomationConfig:
    """Build the configuration from defaults, an optional JSON file and the environment

    Args:
        path: JSON config file with identity/vm/mesh/gateway/pipelines sections
        environ: Environment mapping, os.environ when omitted

    Returns:
        AutomationConfig
    """
    config = AutomationConfig()
    environ = os.environ if environ is None else environ

    if path:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError("Config file not found", path) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file is not valid JSON ({e})", path) from e
        if not isinstance(data, dict):
            raise ConfigurationError("Config file must contain a JSON object", path)

        for section, values in data.items():
            if section not in SECTIONS:
                raise ConfigurationError("Unknown config section", section)
            values = dict(values) if isinstance(values, dict) else values
            if section == "mesh" and isinstance(values, dict):
                if "clusters" in values:
                    config.mesh.clusters = _parse_clusters(values.pop("clusters"))
                if "gateway_subnet" in values:
                    gw = values.pop("gateway_subnet")
                    try:
                        config.mesh.gateway_subnet = SubnetSettings(gw["name"], gw["address_prefix"])
                    except (KeyError, TypeError) as e:
                        raise ConfigurationError("Invalid gateway subnet", "mesh.gateway_subnet") from e
            _apply_section(getattr(config, section), section, values)
        logger.info(f"Loaded configuration from {path}")

    for env_var, (section, attr) in ENV_OVERRIDES.items():
        value = environ.get(env_var)
        if value:
            setattr(getattr(config, section), attr, value)
            logger.debug(f"{section}.{attr} overridden by {env_var}")

    return config

"""
Data models for Azure automation

Exports:
- AzureIdentity: Service principal and subscription settings
- VMSettings / DerivedVMNames: VM provisioning inputs
- MeshSettings / ClusterSettings / SubnetSettings: Mesh network topology
- GatewaySettings: Application Gateway and WAF policy
- PipelineRecord: One row of the pipeline export
- PipelineExportSettings: REST source and spreadsheet target
"""

from .identity import AzureIdentity
from .vm import VMSettings, DerivedVMNames
from .mesh import MeshSettings, ClusterSettings, SubnetSettings, GatewaySettings
from .pipeline import PipelineRecord, PipelineExportSettings

__all__ = [
    'AzureIdentity',
    'VMSettings',
    'DerivedVMNames',
    'MeshSettings',
    'ClusterSettings',
    'SubnetSettings',
    'GatewaySettings',
    'PipelineRecord',
    'PipelineExportSettings'
]

"""
Azure Automation Package

Service principal login, VM provisioning, pipeline export to Excel and
multi-cluster mesh network setup on Azure.
"""

__version__ = "1.0.0"
__all__ = [
    'auth',
    'vm_provisioner',
    'pipeline_export',
    'mesh_network',
    'app_gateway',
]

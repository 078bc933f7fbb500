from dataclasses import dataclass
from typing import Optional


@dataclass
class AzureIdentity:
    """Service principal credentials and the subscription to work in"""
    subscription: str = ""
    tenant_id: str = ""
    client_id: str = ""
    client_secret: Optional[str] = None

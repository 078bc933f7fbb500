from dataclasses import dataclass, field
from typing import Any, Dict, Optional

BASE_COLUMNS = ["id", "name", "folder", "revision", "url"]


@dataclass
class PipelineRecord:
    """A pipeline as returned by the REST listing, flattened for the sheet"""
    id: int
    name: str
    folder: str = "\\"
    revision: Optional[int] = None
    url: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "PipelineRecord":
        known = set(BASE_COLUMNS) | {"_links"}
        extra = {}
        for key, value in item.items():
            if key in known:
                continue
            # Nested objects are kept as their plain value where it exists
            if isinstance(value, dict):
                value = value.get("name", value.get("href", str(value)))
            extra[key] = value
        web_link = item.get("_links", {}).get("web", {}).get("href")
        return cls(
            id=int(item.get("id", 0)),
            name=str(item.get("name", "")),
            folder=str(item.get("folder", "\\")),
            revision=item.get("revision"),
            url=web_link or str(item.get("url", "")),
            extra=extra,
        )

    def to_row(self) -> Dict[str, Any]:
        row = {
            "id": self.id,
            "name": self.name,
            "folder": self.folder,
            "revision": self.revision,
            "url": self.url,
        }
        row.update(self.extra)
        return row


DEFAULT_OUTPUT_PATH = "output/pipelines.xlsx"


@dataclass
class PipelineExportSettings:
    organization: str = ""
    project: str = ""
    api_version: str = "7.1"
    base_url: str = "https://dev.azure.com"
    output_path: str = DEFAULT_OUTPUT_PATH
    sheet_name: str = "Pipelines"
    auth: str = "pat"  # pat or service_principal
    page_size: int = 100

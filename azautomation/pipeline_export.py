"""
Pipeline export.

Lists the pipelines of an Azure DevOps project over REST and writes one row
per pipeline into an Excel workbook.
"""
import base64
import logging
from typing import List, Optional

import requests

from .auth import get_credential
from .exceptions import ConfigurationError, PipelineExportError
from .models import AzureIdentity, PipelineExportSettings, PipelineRecord
from .reports.excel import write_pipeline_report
from .utils.logger import ColorPrinter
from .utils.secret_store import get_secret

logger = logging.getLogger("azautomation.pipeline_export")

PAT_ENV = "AZURE_DEVOPS_PAT"
# Azure DevOps resource id for AAD tokens
DEVOPS_SCOPE = "499b84ac-1321-427f-aa17-267ca6975798/.default"
CONTINUATION_HEADER = "x-ms-continuationtoken"
REQUEST_TIMEOUT = 30


def get_pat(prompt: bool = False) -> str:
    pat = get_secret("devops-pat", env_var=PAT_ENV, prompt=prompt)
    if not pat:
        raise ConfigurationError(f"No personal access token found in {PAT_ENV} or keyring", "devops-pat")
    return pat


def create_session(settings: PipelineExportSettings, identity: Optional[AzureIdentity] = None,
                   prompt: bool = False) -> requests.Session:
    """Build an authenticated requests session for the DevOps REST API"""
    session = requests.Session()
    session.headers.update({'Accept': 'application/json'})

    if settings.auth == "pat":
        token = base64.b64encode(f":{get_pat(prompt)}".encode()).decode()
        session.headers['Authorization'] = f'Basic {token}'
    elif settings.auth == "service_principal":
        if identity is None:
            raise ConfigurationError("Service principal auth needs an identity", "pipelines.auth")
        access_token = get_credential(identity, prompt=prompt).get_token(DEVOPS_SCOPE)
        session.headers['Authorization'] = f'Bearer {access_token.token}'
    else:
        raise ConfigurationError("pipelines.auth must be 'pat' or 'service_principal'", settings.auth)
    return session


def pipelines_url(settings: PipelineExportSettings) -> str:
    if not settings.organization or not settings.project:
        raise ConfigurationError("Missing pipeline setting", "organization/project")
    return f"{settings.base_url.rstrip('/')}/{settings.organization}/{settings.project}/_apis/pipelines"


def fetch_pipelines(session: requests.Session, settings: PipelineExportSettings) -> List[PipelineRecord]:
    """Fetch every pipeline, following continuation tokens

    Returns:
        Pipelines in the order the API returned them
    """
    url = pipelines_url(settings)
    params = {"api-version": settings.api_version, "$top": settings.page_size}
    records = []
    page = 0

    while True:
        page += 1
        logger.info(f"GET {url} page {page}")
        response = session.get(url, params=params, timeout=REQUEST_TIMEOUT)
        if response.status_code != 200:
            logger.error(f"Pipeline listing failed: {response.status_code} {response.text[:500]}")
            raise PipelineExportError(url, response.status_code, response.text)

        items = response.json().get("value", [])
        records.extend(PipelineRecord.from_api(item) for item in items)
        logger.info(f"Retrieved {len(items)} pipelines, current total: {len(records)}")

        token = response.headers.get(CONTINUATION_HEADER)
        if not token or not items:
            break
        params["continuationToken"] = token

    return records


def export_pipelines(settings: PipelineExportSettings, identity: Optional[AzureIdentity] = None,
                     session: Optional[requests.Session] = None, prompt: bool = False) -> str:
    """Fetch the pipeline list and write it to the configured workbook

    Returns:
        Path of the written workbook
    """
    session = session or create_session(settings, identity, prompt=prompt)
    ColorPrinter.print_info(f"Fetching pipelines for {settings.organization}/{settings.project}")
    records = fetch_pipelines(session, settings)
    ColorPrinter.print_info(f"Found {len(records)} pipelines")
    return write_pipeline_report(records, settings.output_path, settings.sheet_name)

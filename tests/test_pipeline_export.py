import base64

import pandas as pd
import pytest

from azautomation.exceptions import ConfigurationError, PipelineExportError
from azautomation.models import AzureIdentity, PipelineExportSettings, PipelineRecord
from azautomation.pipeline_export import create_session, export_pipelines, fetch_pipelines
from azautomation.reports.excel import write_pipeline_report


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.headers = headers or {}
        self.text = text

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, dict(params or {})))
        return self.responses.pop(0)


def _pipeline(pid, name, folder="\\"):
    return {
        "id": pid,
        "name": name,
        "folder": folder,
        "revision": 3,
        "url": f"https://dev.azure.com/org/proj/_apis/pipelines/{pid}",
        "_links": {"web": {"href": f"https://dev.azure.com/org/proj/_build/definition?definitionId={pid}"}},
    }


@pytest.fixture
def settings(tmp_path):
    return PipelineExportSettings(organization="org", project="proj",
                                  output_path=str(tmp_path / "out" / "pipelines.xlsx"))


class TestFetchPipelines:
    def test_follows_continuation_token(self, settings):
        session = FakeSession([
            FakeResponse(payload={"value": [_pipeline(1, "build")]}, headers={"x-ms-continuationtoken": "abc"}),
            FakeResponse(payload={"value": [_pipeline(2, "release", "\\deploy")]}),
        ])
        records = fetch_pipelines(session, settings)

        assert [r.name for r in records] == ["build", "release"]
        assert session.requests[0][0] == "https://dev.azure.com/org/proj/_apis/pipelines"
        assert session.requests[0][1]["api-version"] == "7.1"
        assert "continuationToken" not in session.requests[0][1]
        assert session.requests[1][1]["continuationToken"] == "abc"

    def test_error_status_raises(self, settings):
        session = FakeSession([FakeResponse(status_code=401, text="Unauthorized")])
        with pytest.raises(PipelineExportError) as excinfo:
            fetch_pipelines(session, settings)
        assert excinfo.value.status_code == 401

    def test_requires_organization_and_project(self):
        with pytest.raises(ConfigurationError):
            fetch_pipelines(FakeSession([]), PipelineExportSettings())


class TestPipelineRecord:
    def test_prefers_web_link(self):
        record = PipelineRecord.from_api(_pipeline(7, "ci"))
        assert record.url.endswith("definitionId=7")

    def test_keeps_extra_fields(self):
        item = _pipeline(7, "ci")
        item["configuration"] = {"type": "yaml"}
        row = PipelineRecord.from_api(item).to_row()
        assert row["configuration"] == "{'type': 'yaml'}"
        assert list(row)[:5] == ["id", "name", "folder", "revision", "url"]


class TestExcelReport:
    def test_writes_one_row_per_pipeline(self, settings):
        records = [PipelineRecord.from_api(_pipeline(1, "build")),
                   PipelineRecord.from_api(_pipeline(2, "release", "\\deploy"))]
        path = write_pipeline_report(records, settings.output_path, settings.sheet_name)

        df = pd.read_excel(path, sheet_name="Pipelines", engine="openpyxl")
        assert list(df.columns) == ["id", "name", "folder", "revision", "url"]
        assert df["name"].tolist() == ["build", "release"]
        assert df["folder"].tolist() == ["\\", "\\deploy"]

    def test_empty_listing_writes_headers(self, settings):
        path = write_pipeline_report([], settings.output_path)
        df = pd.read_excel(path, sheet_name="Pipelines", engine="openpyxl")
        assert df.empty
        assert list(df.columns) == ["id", "name", "folder", "revision", "url"]


class TestExport:
    def test_export_end_to_end(self, settings):
        session = FakeSession([FakeResponse(payload={"value": [_pipeline(1, "build")]})])
        path = export_pipelines(settings, session=session)
        assert path == settings.output_path
        assert pd.read_excel(path, engine="openpyxl")["id"].tolist() == [1]

    def test_pat_session_uses_basic_auth(self, settings, monkeypatch):
        monkeypatch.setenv("AZURE_DEVOPS_PAT", "token123")
        session = create_session(settings)
        expected = base64.b64encode(b":token123").decode()
        assert session.headers["Authorization"] == f"Basic {expected}"

    def test_missing_pat_raises(self, settings, monkeypatch):
        monkeypatch.delenv("AZURE_DEVOPS_PAT", raising=False)
        with pytest.raises(ConfigurationError):
            create_session(settings)

    def test_service_principal_session_uses_bearer_token(self, settings, monkeypatch):
        class Token:
            token = "aad-token"

        class Credential:
            def get_token(self, scope):
                assert scope.endswith("/.default")
                return Token()

        monkeypatch.setattr("azautomation.pipeline_export.get_credential", lambda identity, prompt=False: Credential())
        settings.auth = "service_principal"
        session = create_session(settings, AzureIdentity(tenant_id="t", client_id="c"))
        assert session.headers["Authorization"] == "Bearer aad-token"

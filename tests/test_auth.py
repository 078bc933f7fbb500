import pytest

from azautomation.auth import get_credential, login_service_principal, resolve_client_secret
from azautomation.exceptions import AzureCLIError, ConfigurationError
from azautomation.models import AzureIdentity


def _identity(**overrides):
    values = dict(subscription="Dev Subscription", tenant_id="tenant-1", client_id="app-1")
    values.update(overrides)
    return AzureIdentity(**values)


def test_login_then_select_subscription(make_cli, monkeypatch):
    monkeypatch.setenv("AZURE_CLIENT_SECRET", "sp-secret")
    cli, fake = make_cli([("account show", {"id": "sub-1", "name": "Dev Subscription"})])

    account = login_service_principal(cli, _identity())

    assert account["id"] == "sub-1"
    assert fake.verbs(2) == ["login", "account set", "account show"]
    login = fake.commands()[0]
    assert login[login.index("--username") + 1] == "app-1"
    assert login[login.index("--password") + 1] == "sp-secret"
    assert login[login.index("--tenant") + 1] == "tenant-1"
    select = fake.commands()[1]
    assert select[select.index("--subscription") + 1] == "Dev Subscription"


def test_secret_is_not_logged(make_cli, monkeypatch, caplog):
    monkeypatch.setenv("AZURE_CLIENT_SECRET", "sp-secret")
    cli, _ = make_cli()
    with caplog.at_level("DEBUG", logger="azautomation"):
        login_service_principal(cli, _identity())
    assert "sp-secret" not in caplog.text


def test_secret_from_keyring(monkeypatch, no_keyring):
    monkeypatch.delenv("AZURE_CLIENT_SECRET", raising=False)
    no_keyring[("azautomation", "client-secret-app-1")] = "kr-secret"
    assert resolve_client_secret(_identity()) == "kr-secret"


def test_missing_secret_makes_no_calls(make_cli, monkeypatch):
    monkeypatch.delenv("AZURE_CLIENT_SECRET", raising=False)
    cli, fake = make_cli()
    with pytest.raises(ConfigurationError):
        login_service_principal(cli, _identity())
    assert fake.calls == []


@pytest.mark.parametrize("missing", ["tenant_id", "client_id"])
def test_missing_identity_fields_make_no_calls(make_cli, missing):
    cli, fake = make_cli()
    with pytest.raises(ConfigurationError):
        login_service_principal(cli, _identity(client_secret="x", **{missing: ""}))
    assert fake.calls == []


def test_login_failure_skips_subscription_selection(make_cli):
    cli, fake = make_cli(fail_on="login")
    with pytest.raises(AzureCLIError):
        login_service_principal(cli, _identity(client_secret="x"))
    assert len(fake.calls) == 1


def test_without_subscription_keeps_default_context(make_cli):
    cli, fake = make_cli([("account show", {"id": "default"})])
    login_service_principal(cli, _identity(subscription="", client_secret="x"))
    assert fake.verbs(2) == ["login", "account show"]


def test_get_credential_builds_client_secret_credential(monkeypatch):
    captured = {}

    class FakeCredential:
        def __init__(self, **kwargs):
            captured.update(kwargs)

    monkeypatch.setattr("azautomation.auth.ClientSecretCredential", FakeCredential)
    get_credential(_identity(client_secret="x"))
    assert captured == {"tenant_id": "tenant-1", "client_id": "app-1", "client_secret": "x"}

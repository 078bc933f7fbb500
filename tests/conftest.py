"""
Shared fixtures: a recording stand-in for the `az` process.
"""
import json
import subprocess

import pytest

from azautomation.utils.azure_cli import AzureCLI


class FakeRunner:
    """Records every command and answers from a list of (substring, stdout) rules

    The first rule whose substring occurs in the joined command wins. A rule
    value may be a callable, a list (consumed one item per call) or a string.
    Commands containing `fail_on` exit with status 1.
    """

    def __init__(self, responses=None, fail_on=None):
        self.calls = []
        self.responses = [(needle, list(value) if isinstance(value, list) else value)
                          for needle, value in (responses or [])]
        self.fail_on = fail_on

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        joined = " ".join(cmd[1:])
        if self.fail_on and self.fail_on in joined:
            return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="ERROR: simulated failure")
        for needle, stdout in self.responses:
            if needle in joined:
                if callable(stdout):
                    stdout = stdout()
                elif isinstance(stdout, list):
                    stdout = stdout.pop(0) if len(stdout) > 1 else stdout[0]
                if isinstance(stdout, (dict, list)):
                    stdout = json.dumps(stdout)
                return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")
        default = "" if cmd[-2:] in (["-o", "tsv"], ["-o", "none"]) else "{}"
        return subprocess.CompletedProcess(cmd, 0, stdout=default, stderr="")

    def commands(self):
        """Calls without the az executable and the trailing output flag"""
        result = []
        for cmd in self.calls:
            args = cmd[1:]
            if len(args) >= 2 and args[-2] == "-o":
                args = args[:-2]
            result.append(args)
        return result

    def verbs(self, depth=3):
        """First `depth` tokens of every call, for checking call order"""
        out = []
        for args in self.commands():
            words = []
            for token in args:
                if token.startswith("-") or len(words) == depth:
                    break
                words.append(token)
            out.append(" ".join(words))
        return out


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def make_cli():
    def _make(responses=None, fail_on=None, dry_run=False):
        fake = FakeRunner(responses, fail_on)
        return AzureCLI(az_path="az", dry_run=dry_run, runner=fake), fake
    return _make


@pytest.fixture(autouse=True)
def no_keyring(monkeypatch):
    """Keep tests away from the real system keyring"""
    store = {}
    monkeypatch.setattr("azautomation.utils.secret_store.keyring.get_password",
                        lambda service, name: store.get((service, name)))
    monkeypatch.setattr("azautomation.utils.secret_store.keyring.set_password",
                        lambda service, name, value: store.__setitem__((service, name), value))
    return store

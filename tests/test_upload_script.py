"""
Tests for the Parameter Store upload script.
"""

from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from scripts import upload_env_to_parameter_store as script


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "RAID_LOOT_STORAGE_BACKEND=dynamodb\n"
        "RAID_LOOT_AUTH_SESSION_SECRET=s3cret-value\n"
        "UNRELATED=ignored\n"
    )
    return str(path)


@pytest.fixture
def ssm(monkeypatch):
    client = MagicMock()
    client.put_parameter.return_value = {"Version": 1}
    monkeypatch.setattr(script.boto3, "client", lambda service: client)
    return client


def test_loads_only_tracker_settings(env_file):
    assert script.load_env_file(env_file) == {
        "storage/backend": "dynamodb",
        "auth/session-secret": "s3cret-value",
    }


def test_dry_run_masks_secrets(env_file, ssm):
    result = CliRunner().invoke(script.main, ["--env-file", env_file, "--dry-run"])

    assert result.exit_code == 0
    assert "/raid-loot/storage/backend = dynamodb" in result.output
    assert "s3cret-value" not in result.output
    ssm.put_parameter.assert_not_called()


def test_upload(env_file, ssm):
    result = CliRunner().invoke(script.main, ["--env-file", env_file])

    assert result.exit_code == 0
    calls = {c.kwargs["Name"]: c.kwargs["Type"] for c in ssm.put_parameter.call_args_list}
    assert calls == {
        "/raid-loot/storage/backend": "String",
        "/raid-loot/auth/session-secret": "SecureString",
    }


def test_missing_file(tmp_path):
    result = CliRunner().invoke(script.main, ["--env-file", str(tmp_path / "nope.env")])
    assert result.exit_code == 1

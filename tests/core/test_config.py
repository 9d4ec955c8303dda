# tests/core/test_config.py

import os
from unittest import mock

import pytest

from media_ingest.core.config import IngestSettings, StoreSettings
from media_ingest.core.exceptions import ConfigurationError

FULL_ENV = {
    "R2_ACCOUNT_ID": "acct",
    "R2_ACCESS_KEY": "key",
    "R2_SECRET_KEY": "secret",
    "R2_BUCKET": "media",
}


def test_defaults_from_empty_environment():
    settings = IngestSettings.from_env(environ={})
    assert settings.image_concurrency == 3
    assert settings.raw_concurrency == 6
    assert settings.focal_strategy == "auto"
    assert settings.store_attempts == 3
    assert settings.manifest_dir == "content/manifests"


def test_reads_every_variable():
    env = {
        **FULL_ENV,
        "MEDIA_INGEST_IMAGE_CONCURRENCY": "2",
        "MEDIA_INGEST_RAW_CONCURRENCY": "9",
        "MEDIA_INGEST_FOCAL_STRATEGY": "saliency",
        "MEDIA_INGEST_STORE_ATTEMPTS": "5",
        "MEDIA_INGEST_MANIFEST_DIR": "/tmp/manifests",
        "MEDIA_INGEST_MODEL_PATH": "/models/face.onnx",
        "MEDIA_INGEST_BRAND": "acme",
    }
    settings = IngestSettings.from_env(environ=env)
    assert settings.image_concurrency == 2
    assert settings.raw_concurrency == 9
    assert settings.focal_strategy == "saliency"
    assert settings.store_attempts == 5
    assert settings.manifest_dir == "/tmp/manifests"
    assert settings.model_path == "/models/face.onnx"
    assert settings.brand == "acme"
    assert settings.store.bucket == "media"


@pytest.mark.parametrize(
    "env,match",
    [
        ({"MEDIA_INGEST_IMAGE_CONCURRENCY": "many"}, "must be an integer"),
        ({"MEDIA_INGEST_IMAGE_CONCURRENCY": "0"}, "Invalid configuration"),
        ({"MEDIA_INGEST_FOCAL_STRATEGY": "magic"}, "Invalid configuration"),
    ],
)
def test_invalid_values_raise_configuration_error(env, match):
    with pytest.raises(ConfigurationError, match=match):
        IngestSettings.from_env(environ=env)


def test_endpoint_defaults_to_r2_account():
    assert StoreSettings(account_id="abc").resolved_endpoint == "https://abc.r2.cloudflarestorage.com"
    assert StoreSettings(account_id="abc", endpoint_url="http://localhost:9000").resolved_endpoint == (
        "http://localhost:9000"
    )
    assert StoreSettings().resolved_endpoint is None


def test_missing_credentials_are_all_named():
    settings = IngestSettings.from_env(environ={"R2_BUCKET": "media"})
    with pytest.raises(ConfigurationError) as excinfo:
        settings.require_store_credentials()
    message = str(excinfo.value)
    for name in ("R2_ACCOUNT_ID", "R2_ACCESS_KEY", "R2_SECRET_KEY"):
        assert name in message
    assert "R2_BUCKET" not in message


def test_complete_credentials_are_returned():
    settings = IngestSettings.from_env(environ=FULL_ENV)
    assert settings.missing_store_credentials() == []
    assert settings.require_store_credentials().access_key == "key"


def test_env_file_does_not_override_environment(tmp_path):
    env_file = tmp_path / ".env.local"
    env_file.write_text("R2_BUCKET=from-file\nMEDIA_INGEST_RAW_CONCURRENCY=4\n")
    with mock.patch.dict(os.environ, {"R2_BUCKET": "from-env"}, clear=True):
        settings = IngestSettings.from_env(env_file=str(env_file))
    assert settings.store.bucket == "from-env"
    assert settings.raw_concurrency == 4


def test_missing_env_file_is_ignored(tmp_path):
    with mock.patch.dict(os.environ, {}, clear=True):
        settings = IngestSettings.from_env(env_file=str(tmp_path / "nope.env"))
    assert settings.store.bucket == ""

"""Test configuration and shared fixtures."""

import pytest
import yaml

from tagdist.runtime.sdk import configuration as sdk_configuration
from tagdist.runtime.sdk import metrics as sdk_metrics


@pytest.fixture(autouse=True)
def _reset_metrics():
    sdk_metrics.reset_metrics()
    yield
    sdk_metrics.reset_metrics()


@pytest.fixture
def configure_tagdist(tmp_path, monkeypatch):
    def _apply(data: dict, *, filename: str = "tagdist.yml") -> str:
        cfg_path = tmp_path / filename
        cfg_path.write_text(yaml.safe_dump(data))
        monkeypatch.chdir(tmp_path)
        sdk_configuration.reset_runtime_config_cache()
        return str(cfg_path)

    try:
        yield _apply
    finally:
        sdk_configuration.reset_runtime_config_cache()

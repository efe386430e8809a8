"""
Test cases for configuration loading and the orchestrator factory.
"""

import pytest

from deploywatch.config import settings
from deploywatch.config.orchestrator_factory import create_orchestrator
from deploywatch.config.settings import DeploywatchConfig, OrchestratorConfig, get_config, load_config, set_config
from deploywatch.core.enums import SubmissionMode
from deploywatch.services.http_client import HttpDeploymentServices

CONFIG_YAML = """
service:
  base_url: https://deploy.example.com/api/
  timeout: 5
  api_token: secret
orchestrator:
  submission_mode: side_channel
  max_poll_attempts: 90
  poll_budgets:
    quick: 10
cache:
  max_mapping_entries: 50
api:
  port: 9000
logging:
  level: DEBUG
"""


@pytest.fixture(autouse=True)
def reset_global_config(monkeypatch):
    monkeypatch.setattr(settings, "_config", None)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "deploywatch.yaml"
    path.write_text(CONFIG_YAML)
    return path


class TestDeploywatchConfig:

    def test_defaults(self):
        config = DeploywatchConfig.default()

        assert config.orchestrator.submission_mode == "direct"
        assert config.orchestrator.max_poll_attempts == 60
        assert config.orchestrator.poll_budgets == {"standard": 60, "quick": 30}
        assert config.cache.type == "memory"
        assert config.cache.max_mapping_entries is None
        assert config.api.port == 8000

    def test_from_yaml(self, config_file):
        config = DeploywatchConfig.from_yaml(str(config_file))

        assert config.service.base_url == "https://deploy.example.com/api/"
        assert config.service.api_token == "secret"
        assert config.orchestrator.submission_mode == "side_channel"
        assert config.orchestrator.poll_budgets == {"quick": 10}
        assert config.cache.max_mapping_entries == 50
        assert config.api.port == 9000
        assert config.api.host == "0.0.0.0"
        assert config.logging.level == "DEBUG"

    def test_missing_file_gives_defaults(self, tmp_path):
        config = DeploywatchConfig.from_yaml(str(tmp_path / "nope.yaml"))
        assert config == DeploywatchConfig.default()

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert DeploywatchConfig.from_yaml(str(path)) == DeploywatchConfig.default()

    @pytest.mark.parametrize("kwargs", [
        {"submission_mode": "carrier_pigeon"},
        {"max_poll_attempts": 0},
        {"poll_budgets": {"quick": 0}},
    ])
    def test_invalid_orchestrator_settings(self, kwargs):
        with pytest.raises(ValueError):
            OrchestratorConfig(**kwargs)


class TestLoadConfig:

    def test_explicit_path(self, config_file):
        config = load_config(str(config_file))
        assert config.api.port == 9000
        assert get_config() is config

    def test_search_path(self, config_file, monkeypatch):
        monkeypatch.chdir(config_file.parent)
        assert load_config().api.port == 9000

    def test_set_config(self):
        config = DeploywatchConfig.default()
        set_config(config)
        assert get_config() is config


class TestOrchestratorFactory:

    def test_builds_http_services_from_config(self, config_file):
        orchestrator = create_orchestrator(DeploywatchConfig.from_yaml(str(config_file)))

        assert isinstance(orchestrator.services, HttpDeploymentServices)
        assert orchestrator.services.base_url == "https://deploy.example.com/api"
        assert orchestrator.services.api_token == "secret"
        assert orchestrator.submission_mode == SubmissionMode.SIDE_CHANNEL
        assert orchestrator.max_poll_attempts == 90
        assert orchestrator.poll_budgets == {"quick": 10}
        assert orchestrator.cache.max_mapping_entries == 50

    def test_uses_given_services(self, services):
        orchestrator = create_orchestrator(DeploywatchConfig.default(), services=services)
        assert orchestrator.services is services

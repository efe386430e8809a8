import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field

from ..core.enums import SubmissionMode


@dataclass
class ServiceConfig:
    """Remote deployment service configuration"""
    base_url: str = "http://localhost:8080/api"
    timeout: float = 10.0
    api_token: Optional[str] = None


@dataclass
class OrchestratorConfig:
    """Deployment job orchestration settings"""
    submission_mode: str = SubmissionMode.DIRECT.value
    max_poll_attempts: int = 60
    # Per deployment class attempt budgets (one attempt per second)
    poll_budgets: Dict[str, int] = field(default_factory=lambda: {"standard": 60, "quick": 30})

    def __post_init__(self):
        # Fail early on a typo rather than at first deploy
        SubmissionMode(self.submission_mode)
        if self.max_poll_attempts < 1:
            raise ValueError(f"max_poll_attempts must be at least 1, got {self.max_poll_attempts}")
        for name, attempts in self.poll_budgets.items():
            if int(attempts) < 1:
                raise ValueError(f"poll budget '{name}' must be at least 1, got {attempts}")


@dataclass
class CacheConfig:
    """Status cache configuration"""
    type: str = "memory"
    max_mapping_entries: Optional[int] = None


@dataclass
class ApiConfig:
    """HTTP API configuration"""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class DeploywatchConfig:
    """Top-level deploywatch configuration"""
    service: ServiceConfig
    orchestrator: OrchestratorConfig
    cache: CacheConfig
    api: ApiConfig
    logging: LoggingConfig

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeploywatchConfig':
        """Create DeploywatchConfig from dictionary"""
        return cls(
            service=ServiceConfig(**data.get('service', {})),
            orchestrator=OrchestratorConfig(**data.get('orchestrator', {})),
            cache=CacheConfig(**data.get('cache', {})),
            api=ApiConfig(**data.get('api', {})),
            logging=LoggingConfig(**data.get('logging', {}))
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'DeploywatchConfig':
        """Load DeploywatchConfig from YAML file"""
        path = Path(yaml_path)
        if not path.exists():
            # Return default config if file doesn't exist
            return cls.default()

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def default(cls) -> 'DeploywatchConfig':
        """Return default configuration"""
        return cls(
            service=ServiceConfig(),
            orchestrator=OrchestratorConfig(),
            cache=CacheConfig(),
            api=ApiConfig(),
            logging=LoggingConfig()
        )


# Global instance - can be overridden
_config: Optional[DeploywatchConfig] = None


def load_config(config_path: Optional[str] = None) -> DeploywatchConfig:
    """
    Load configuration from YAML file.
    If no path provided, looks for deploywatch.yaml in standard locations.
    """
    global _config

    if config_path:
        _config = DeploywatchConfig.from_yaml(config_path)
        return _config

    search_paths = [
        Path("./deploywatch.yaml"),
        Path("./config/deploywatch.yaml"),
        Path("/etc/deploywatch/deploywatch.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            _config = DeploywatchConfig.from_yaml(str(path))
            return _config

    # Return default if no config found
    _config = DeploywatchConfig.default()
    return _config


def get_config() -> DeploywatchConfig:
    """Get the loaded configuration, loading defaults on first use"""
    global _config

    if _config is None:
        _config = load_config()

    return _config


def set_config(config: DeploywatchConfig) -> None:
    """Override the loaded configuration (tests, embedding applications)"""
    global _config
    _config = config

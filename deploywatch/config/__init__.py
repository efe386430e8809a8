from .settings import (
    ApiConfig,
    CacheConfig,
    DeploywatchConfig,
    LoggingConfig,
    OrchestratorConfig,
    ServiceConfig,
    get_config,
    load_config,
    set_config,
)
from .orchestrator_factory import create_orchestrator

__all__ = [
    'ApiConfig',
    'CacheConfig',
    'DeploywatchConfig',
    'LoggingConfig',
    'OrchestratorConfig',
    'ServiceConfig',
    'get_config',
    'load_config',
    'set_config',
    'create_orchestrator',
]

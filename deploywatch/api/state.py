"""
Process-wide objects shared by the API routers.

Keys:
    orchestrator: DeploymentOrchestrator
    notifier: CollectingNotifier the orchestrator reports to
    config: DeploywatchConfig used at startup
"""
from typing import Any, Dict

app_state: Dict[str, Any] = {}

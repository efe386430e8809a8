import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config.orchestrator_factory import create_orchestrator
from ..config.settings import get_config
from ..services.notifier import CollectingNotifier, LoggingNotifier
from .state import app_state


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    # Startup
    logging.info("Starting deploywatch API")

    config = app_state.get("config") or get_config()
    app_state["config"] = config

    if app_state.get("orchestrator") is None:
        notifier = CollectingNotifier(forward_to=LoggingNotifier())
        app_state["notifier"] = notifier
        app_state["orchestrator"] = create_orchestrator(config, notifier=notifier)
        logging.info(f"Using deployment service at {config.service.base_url}")

    yield

    # Shutdown
    logging.info("Shutting down deploywatch API")
    orchestrator = app_state.get("orchestrator")
    if orchestrator is not None:
        orchestrator.close()
        await orchestrator.services.close()


# Create FastAPI app
app = FastAPI(
    title="deploywatch API",
    description="Submit deployments and follow them to completion",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify allowed origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
from .routers import deployment, targets
app.include_router(targets.router)
app.include_router(deployment.router)
app.include_router(deployment.notifications_router)


@app.get("/health")
async def health():
    orchestrator = app_state.get("orchestrator")
    job = orchestrator.job if orchestrator else None
    return {
        "status": "ok",
        "phase": job.phase.value if job else None,
        "cache": orchestrator.cache.get_stats() if orchestrator else None,
    }


def run(host: str = "0.0.0.0", port: int = 8000, log_level: str = "info"):
    """Serve the API with uvicorn"""
    uvicorn.run(app, host=host, port=port, log_level=log_level)

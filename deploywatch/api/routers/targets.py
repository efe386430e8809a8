"""
API endpoints for deployable targets and their field mappings.
"""
from fastapi import APIRouter, HTTPException, Query
from typing import List

from ...core.errors import ServiceError
from ...deploy.orchestrator import DeploymentOrchestrator
from ..models.api_models import CardModel, MappingBundleModel, MappingModel, TargetOptionModel
from ..state import app_state

router = APIRouter(prefix="/api", tags=["targets"])


def get_orchestrator() -> DeploymentOrchestrator:
    """Get the orchestrator instance"""
    orchestrator = app_state.get("orchestrator")
    if orchestrator is None:
        raise HTTPException(status_code=500, detail="Orchestrator not initialized")
    return orchestrator


@router.get("/targets", response_model=List[TargetOptionModel])
async def list_targets():
    """List deployable targets"""
    orchestrator = get_orchestrator()
    try:
        options = await orchestrator.load_target_options()
    except ServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [TargetOptionModel(key=o.key, label=o.label) for o in options]


@router.get("/cards", response_model=List[CardModel])
async def list_cards(refresh: bool = Query(False, description="Bypass the card cache")):
    """
    List targets with their mapping statistics.

    Args:
        refresh: Ignore the cached card list

    Returns:
        Card summaries
    """
    orchestrator = get_orchestrator()
    try:
        cards = await orchestrator.load_cards(force=refresh)
    except ServiceError as e:
        raise HTTPException(status_code=502, detail=str(e) or "Failed to load objects with statistics")
    return [CardModel(**card.to_dict()) for card in cards]


@router.get("/targets/{target_key}/mappings", response_model=MappingBundleModel)
async def get_mappings(target_key: str):
    """Resolved field mappings for one target"""
    orchestrator = get_orchestrator()
    try:
        bundle = await orchestrator.load_field_mappings(target_key)
    except ServiceError as e:
        raise HTTPException(status_code=502, detail=str(e) or "Failed to load field mappings")

    data = bundle.to_dict()
    return MappingBundleModel(
        target_key=target_key,
        tree_nodes=data['tree_nodes'],
        mappings=[MappingModel(**m) for m in data['mappings']]
    )

import logging

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_502_BAD_GATEWAY

from app.core.deps import get_ai_gateway
from app.models.studio import (
    CharacterRequest,
    CharacterResponse,
    GameIdea,
    IdeaRequest,
    LoadingState,
    WorldLore,
    WorldRequest,
)
from app.services.ai_gateway import AiGateway, GatewayError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/studio", tags=["studio"])

PORTRAIT_STYLE = "high quality digital art portrait"


@router.post("/ideas", response_model=GameIdea)
async def generate_idea(body: IdeaRequest, gateway: AiGateway = Depends(get_ai_gateway)):
    try:
        return await gateway.request_game_idea(body.genre, body.theme, body.style)
    except GatewayError as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail="Failed to generate idea") from e


@router.post("/characters", response_model=CharacterResponse)
async def design_character(body: CharacterRequest, gateway: AiGateway = Depends(get_ai_gateway)):
    try:
        profile = await gateway.request_character_profile(body.archetype, body.traits)
    except GatewayError as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail="Failed to design character") from e

    out = CharacterResponse(**profile.model_dump())

    # Portrait en second temps : un échec ici ne fait pas échouer le profil
    description = f"{profile.name}, {profile.role}, {profile.backstory[:100]}"
    try:
        out.imageUrl = await gateway.request_illustration(description, PORTRAIT_STYLE, profile.role)
        out.imageStatus = LoadingState.success
    except GatewayError as e:
        logger.warning("portrait generation failed: %s", e)
        out.imageUrl = None
        out.imageStatus = LoadingState.error
    return out


@router.post("/worlds", response_model=WorldLore)
async def build_world(body: WorldRequest, gateway: AiGateway = Depends(get_ai_gateway)):
    try:
        return await gateway.request_world_lore(body.setting, body.tone)
    except GatewayError as e:
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail="Failed to build world") from e

from fastapi import HTTPException, Request
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from app.core.config import get_settings
from app.services.ai_gateway import AiGateway, GatewayConfigError
from app.services.game_engine import GameEngine


def get_settings_dep():
    return get_settings()


def get_ai_gateway(request: Request) -> AiGateway:
    """
    Fournit la passerelle IA en dépendance (DI), créée au premier appel
    puis partagée par l'application.
    Sans OPENAI_API_KEY, aucun appel IA n'est possible : 503.
    """
    gateway = getattr(request.app.state, "ai_gateway", None)
    if gateway is None:
        try:
            gateway = AiGateway.from_settings(get_settings())
        except GatewayConfigError as e:
            raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
        request.app.state.ai_gateway = gateway
    return gateway


def get_game_engine(request: Request) -> GameEngine:
    return request.app.state.game_engine

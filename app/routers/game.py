from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.core.deps import get_ai_gateway, get_game_engine
from app.models.game import (
    CHARACTERS,
    BookView,
    CharacterChoiceRequest,
    CharacterListResponse,
    ChoiceRequest,
    DeleteResponse,
    GameState,
    NameRequest,
    SentenceRequest,
    TitleRequest,
)
from app.services.ai_gateway import AiGateway
from app.services.game_engine import GameEngine

router = APIRouter(prefix="/v1/game", tags=["game"])


@router.get("/characters", response_model=CharacterListResponse)
def list_characters():
    return CharacterListResponse(items=CHARACTERS)


@router.post("/sessions", response_model=GameState)
def start_game(engine: GameEngine = Depends(get_game_engine)):
    return engine.start()


@router.get("/sessions/{session_id}", response_model=GameState)
def get_game(session_id: str, engine: GameEngine = Depends(get_game_engine)):
    return engine.get(session_id)


@router.delete("/sessions/{session_id}", response_model=DeleteResponse)
def delete_game(session_id: str, engine: GameEngine = Depends(get_game_engine)):
    engine.delete(session_id)
    return DeleteResponse(ok=True, id=session_id)


@router.post("/sessions/{session_id}/name", response_model=GameState)
def enter_name(session_id: str, body: NameRequest, engine: GameEngine = Depends(get_game_engine)):
    return engine.enter_name(session_id, body.name)


@router.post("/sessions/{session_id}/welcome", response_model=GameState)
def confirm_welcome(session_id: str, engine: GameEngine = Depends(get_game_engine)):
    return engine.confirm_welcome(session_id)


@router.post("/sessions/{session_id}/character", response_model=GameState)
def select_character(
    session_id: str,
    body: CharacterChoiceRequest,
    engine: GameEngine = Depends(get_game_engine),
):
    return engine.select_character(session_id, body.characterId)


@router.post("/sessions/{session_id}/title", response_model=GameState)
async def set_title(
    session_id: str,
    body: TitleRequest,
    engine: GameEngine = Depends(get_game_engine),
    gateway: AiGateway = Depends(get_ai_gateway),
):
    return await engine.set_title(session_id, body.title, gateway)


@router.post("/sessions/{session_id}/covers", response_model=GameState)
async def load_covers(
    session_id: str,
    engine: GameEngine = Depends(get_game_engine),
    gateway: AiGateway = Depends(get_ai_gateway),
):
    return await engine.load_covers(session_id, gateway)


@router.post("/sessions/{session_id}/cover", response_model=GameState)
async def choose_cover(
    session_id: str,
    body: ChoiceRequest,
    engine: GameEngine = Depends(get_game_engine),
    gateway: AiGateway = Depends(get_ai_gateway),
):
    return await engine.choose_cover(session_id, body.index, gateway)


@router.post("/sessions/{session_id}/challenge", response_model=GameState)
async def load_challenge(
    session_id: str,
    engine: GameEngine = Depends(get_game_engine),
    gateway: AiGateway = Depends(get_ai_gateway),
):
    return await engine.load_challenge(session_id, gateway)


@router.post("/sessions/{session_id}/sentence", response_model=GameState)
async def submit_sentence(
    session_id: str,
    body: SentenceRequest,
    engine: GameEngine = Depends(get_game_engine),
    gateway: AiGateway = Depends(get_ai_gateway),
):
    return await engine.submit_sentence(session_id, body.sentence, gateway)


@router.post("/sessions/{session_id}/illustration", response_model=GameState)
async def choose_illustration(
    session_id: str,
    body: ChoiceRequest,
    engine: GameEngine = Depends(get_game_engine),
    gateway: AiGateway = Depends(get_ai_gateway),
):
    return await engine.choose_illustration(session_id, body.index, gateway)


@router.get("/sessions/{session_id}/book", response_model=BookView)
def view_page(session_id: str, engine: GameEngine = Depends(get_game_engine)):
    return engine.view_page(session_id)


@router.post("/sessions/{session_id}/book/next", response_model=GameState)
def next_page(session_id: str, engine: GameEngine = Depends(get_game_engine)):
    return engine.turn_page(session_id, +1)


@router.post("/sessions/{session_id}/book/prev", response_model=GameState)
def previous_page(session_id: str, engine: GameEngine = Depends(get_game_engine)):
    return engine.turn_page(session_id, -1)


@router.get("/sessions/{session_id}/export")
def export_book(session_id: str, engine: GameEngine = Depends(get_game_engine)):
    filename, content = engine.export(session_id)
    ascii_name = filename.encode("ascii", "ignore").decode()
    if ascii_name.startswith("."):
        ascii_name = "my_book.html"
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
    return Response(
        content=content,
        media_type="text/html; charset=utf-8",
        headers={"Content-Disposition": disposition},
    )


@router.post("/sessions/{session_id}/reset", response_model=GameState)
def reset_game(session_id: str, engine: GameEngine = Depends(get_game_engine)):
    return engine.reset(session_id)

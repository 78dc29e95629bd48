import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_502_BAD_GATEWAY,
)

from app.models.game import (
    CHARACTERS,
    MAX_LEVELS,
    BookPage,
    BookView,
    Character,
    Feedback,
    GamePhase,
    GameState,
    WritingChallenge,
)
from app.models.studio import LoadingState
from app.services.ai_gateway import AiGateway, GatewayError
from app.services.book_export import book_filename, render_book_html

logger = logging.getLogger(__name__)

ILLUSTRATION_STYLES = ("colorful cartoon", "bright watercolor")
SUCCESS_FEEDBACK = "Super! Now pick a picture."


def _bad_gateway() -> HTTPException:
    return HTTPException(
        status_code=HTTP_502_BAD_GATEWAY,
        detail="Le service de génération est indisponible, réessaie.",
    )


# ---------- phase stages ----------
# Chaque phase porte uniquement ses propres données ; une transition
# remplace le stage en entier.

@dataclass
class _CoverStage:
    covers: List[str] = field(default_factory=list)
    status: LoadingState = LoadingState.idle
    error: Optional[str] = None


@dataclass
class _WritingStage:
    challenge: Optional[WritingChallenge] = None
    feedback: Optional[Feedback] = None
    fall_until: float = 0.0
    status: LoadingState = LoadingState.idle
    error: Optional[str] = None


@dataclass
class _ImageStage:
    sentence: str
    options: List[str]


@dataclass
class _BookStage:
    view_idx: int = 0


_Stage = Union[_CoverStage, _WritingStage, _ImageStage, _BookStage, None]


@dataclass
class _Session:
    id: str
    created_at: float
    phase: GamePhase = GamePhase.ENTER_NAME
    student_name: str = ""
    character: Optional[Character] = None
    title: str = ""
    selected_cover: str = ""
    current_level: int = 1
    pages: List[BookPage] = field(default_factory=list)
    stage: _Stage = None


class GameEngine:
    """
    Machine à états du jeu d'écriture "Story Climber", sessions en mémoire.

    ENTER_NAME → WELCOME → SELECT_CHAR → SELECT_TITLE → SELECT_COVER
    → WRITING ⇄ (nouvel essai) → SELECT_IMAGE → WRITING (niveau suivant) | BOOK_VIEW

    Les appels IA passent par l'AiGateway fourni à chaque opération.
    Une réponse qui arrive après un reset (ou l'expiration) de la session
    est ignorée.
    """

    def __init__(
        self,
        ttl_seconds: int = 60 * 60,
        fall_ms: int = 800,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._sessions: Dict[str, _Session] = {}
        self._ttl_seconds = ttl_seconds
        self._fall_seconds = fall_ms / 1000.0
        self._clock = clock

    # ---------- public API ----------

    def start(self) -> GameState:
        self._prune()
        sess = _Session(id=f"game_{uuid.uuid4().hex[:12]}", created_at=self._clock())
        self._sessions[sess.id] = sess
        logger.info("game session %s started", sess.id)
        return self._snapshot(sess)

    def get(self, session_id: str) -> GameState:
        return self._snapshot(self._get_session(session_id))

    def delete(self, session_id: str) -> None:
        self._get_session(session_id)
        del self._sessions[session_id]

    def enter_name(self, session_id: str, name: str) -> GameState:
        sess = self._get_session(session_id)
        self._require_phase(sess, GamePhase.ENTER_NAME)
        name = (name or "").strip()
        if not name:
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Le prénom est requis.")
        sess.student_name = name
        self._move(sess, GamePhase.WELCOME)
        return self._snapshot(sess)

    def confirm_welcome(self, session_id: str) -> GameState:
        sess = self._get_session(session_id)
        self._require_phase(sess, GamePhase.WELCOME)
        self._move(sess, GamePhase.SELECT_CHAR)
        return self._snapshot(sess)

    def select_character(self, session_id: str, character_id: str) -> GameState:
        sess = self._get_session(session_id)
        self._require_phase(sess, GamePhase.SELECT_CHAR)
        character = next((c for c in CHARACTERS if c.id == character_id), None)
        if character is None:
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Personnage inconnu.")
        sess.character = character
        self._move(sess, GamePhase.SELECT_TITLE)
        return self._snapshot(sess)

    async def set_title(self, session_id: str, title: str, gateway: AiGateway) -> GameState:
        sess = self._get_session(session_id)
        self._require_phase(sess, GamePhase.SELECT_TITLE)
        title = (title or "").strip()
        if not title:
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Le titre est requis.")
        sess.title = title
        self._move(sess, GamePhase.SELECT_COVER, _CoverStage())
        return await self._load_covers(sess, gateway, on_entry=True)

    async def load_covers(self, session_id: str, gateway: AiGateway) -> GameState:
        sess = self._get_session(session_id)
        self._require_phase(sess, GamePhase.SELECT_COVER)
        return await self._load_covers(sess, gateway, on_entry=False)

    async def choose_cover(self, session_id: str, index: int, gateway: AiGateway) -> GameState:
        sess = self._get_session(session_id)
        stage = self._require_phase(sess, GamePhase.SELECT_COVER)
        if stage.status == LoadingState.loading:
            raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Couvertures en cours de génération.")
        self._check_index(index, stage.covers)
        sess.selected_cover = stage.covers[index]
        sess.current_level = 1
        self._move(sess, GamePhase.WRITING, _WritingStage())
        return await self._load_challenge(sess, gateway, on_entry=True)

    async def load_challenge(self, session_id: str, gateway: AiGateway) -> GameState:
        sess = self._get_session(session_id)
        self._require_phase(sess, GamePhase.WRITING)
        return await self._load_challenge(sess, gateway, on_entry=False)

    async def submit_sentence(self, session_id: str, sentence: str, gateway: AiGateway) -> GameState:
        sess = self._get_session(session_id)
        stage = self._require_phase(sess, GamePhase.WRITING)
        sentence = (sentence or "").strip()
        if stage.challenge is None:
            raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Aucun défi chargé pour ce niveau.")
        if stage.status == LoadingState.loading:
            raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Vérification déjà en cours.")
        if self._is_falling(stage):
            raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Patiente un instant avant de réessayer.")
        if not sentence:
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="La phrase est requise.")

        stage.status = LoadingState.loading
        stage.error = None
        try:
            result = await gateway.validate_sentence(stage.challenge, sentence)
        except GatewayError as e:
            self._record_failure(sess, stage, e)
            raise _bad_gateway() from e

        if not self._is_current(sess, stage):
            return self.get(session_id)

        if not result.isCorrect:
            # Mauvaise réponse : le grimpeur "tombe", on reste sur ce niveau
            stage.feedback = Feedback(text=result.feedback, type="error")
            stage.fall_until = self._clock() + self._fall_seconds
            stage.status = LoadingState.idle
            logger.debug("session %s level %d: sentence rejected", sess.id, sess.current_level)
            return self._snapshot(sess)

        stage.feedback = Feedback(text=SUCCESS_FEEDBACK, type="success")
        hero = sess.character.name
        try:
            images = await asyncio.gather(
                *(gateway.request_illustration(sentence, style, hero) for style in ILLUSTRATION_STYLES)
            )
        except GatewayError as e:
            self._record_failure(sess, stage, e)
            raise _bad_gateway() from e

        if not self._is_current(sess, stage):
            return self.get(session_id)

        self._move(sess, GamePhase.SELECT_IMAGE, _ImageStage(sentence=sentence, options=list(images)))
        return self._snapshot(sess)

    async def choose_illustration(self, session_id: str, index: int, gateway: AiGateway) -> GameState:
        sess = self._get_session(session_id)
        stage = self._require_phase(sess, GamePhase.SELECT_IMAGE)
        self._check_index(index, stage.options)

        sess.pages.append(BookPage(text=stage.sentence, imageUrl=stage.options[index]))
        if sess.current_level < MAX_LEVELS:
            sess.current_level += 1
            self._move(sess, GamePhase.WRITING, _WritingStage())
            return await self._load_challenge(sess, gateway, on_entry=True)

        self._move(sess, GamePhase.BOOK_VIEW, _BookStage(view_idx=0))
        logger.info("game session %s finished its book (%d pages)", sess.id, len(sess.pages))
        return self._snapshot(sess)

    def turn_page(self, session_id: str, delta: int) -> GameState:
        sess = self._get_session(session_id)
        stage = self._require_phase(sess, GamePhase.BOOK_VIEW)
        last = len(sess.pages) + 1
        stage.view_idx = max(0, min(last, stage.view_idx + delta))
        return self._snapshot(sess)

    def view_page(self, session_id: str) -> BookView:
        sess = self._get_session(session_id)
        stage = self._require_phase(sess, GamePhase.BOOK_VIEW)
        return self._book_view(sess, stage.view_idx)

    def export(self, session_id: str) -> Tuple[str, bytes]:
        sess = self._get_session(session_id)
        self._require_phase(sess, GamePhase.BOOK_VIEW)
        content = render_book_html(sess.title, sess.student_name, sess.selected_cover, sess.pages)
        return book_filename(sess.title), content

    def reset(self, session_id: str) -> GameState:
        sess = self._get_session(session_id)
        sess.student_name = ""
        sess.character = None
        sess.title = ""
        sess.selected_cover = ""
        sess.current_level = 1
        sess.pages = []
        self._move(sess, GamePhase.ENTER_NAME)
        return self._snapshot(sess)

    # ---------- loaders ----------

    async def _load_covers(self, sess: _Session, gateway: AiGateway, on_entry: bool) -> GameState:
        stage = sess.stage
        if stage.covers or stage.status == LoadingState.loading:
            return self._snapshot(sess)

        stage.status = LoadingState.loading
        stage.error = None
        hero = sess.character.name
        try:
            covers = await asyncio.gather(
                gateway.request_cover_illustration(sess.title, hero),
                gateway.request_cover_illustration(sess.title, hero),
            )
        except GatewayError as e:
            self._record_failure(sess, stage, e)
            if not on_entry:
                raise _bad_gateway() from e
            return self.get(sess.id)

        if not self._is_current(sess, stage):
            return self.get(sess.id)
        stage.covers = list(covers)
        stage.status = LoadingState.idle
        return self._snapshot(sess)

    async def _load_challenge(self, sess: _Session, gateway: AiGateway, on_entry: bool) -> GameState:
        stage = sess.stage
        if stage.challenge is not None or stage.status == LoadingState.loading:
            return self._snapshot(sess)

        stage.status = LoadingState.loading
        stage.error = None
        stage.feedback = None
        try:
            challenge = await gateway.request_challenge(sess.current_level, sess.character.name, sess.title)
        except GatewayError as e:
            self._record_failure(sess, stage, e)
            if not on_entry:
                raise _bad_gateway() from e
            return self.get(sess.id)

        if not self._is_current(sess, stage):
            return self.get(sess.id)
        stage.challenge = challenge
        stage.status = LoadingState.idle
        return self._snapshot(sess)

    # ---------- internals ----------

    def _get_session(self, session_id: str) -> _Session:
        sess = self._sessions.get(session_id)
        if not sess:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Session introuvable.")
        # TTL
        if self._clock() - sess.created_at > self._ttl_seconds:
            self._sessions.pop(session_id, None)
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Session expirée.")
        return sess

    def _prune(self) -> None:
        now = self._clock()
        expired = [sid for sid, s in self._sessions.items() if now - s.created_at > self._ttl_seconds]
        for sid in expired:
            del self._sessions[sid]

    def _require_phase(self, sess: _Session, phase: GamePhase):
        if sess.phase != phase:
            raise HTTPException(
                status_code=HTTP_409_CONFLICT,
                detail=f"Action impossible en phase {sess.phase.value} (attendu : {phase.value}).",
            )
        return sess.stage

    def _move(self, sess: _Session, phase: GamePhase, stage: _Stage = None) -> None:
        logger.debug("session %s: %s -> %s", sess.id, sess.phase.value, phase.value)
        sess.phase = phase
        sess.stage = stage

    def _is_current(self, sess: _Session, stage: _Stage) -> bool:
        return self._sessions.get(sess.id) is sess and sess.stage is stage

    def _is_falling(self, stage: _WritingStage) -> bool:
        return self._clock() < stage.fall_until

    def _record_failure(self, sess: _Session, stage, err: GatewayError) -> None:
        if self._is_current(sess, stage):
            stage.status = LoadingState.error
            stage.error = str(err)
        logger.warning("session %s (%s): %s", sess.id, sess.phase.value, err)

    @staticmethod
    def _check_index(index: int, options: List[str]) -> None:
        if index < 0 or index >= len(options):
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Choix invalide.")

    def _book_view(self, sess: _Session, idx: int) -> BookView:
        if idx == 0:
            return BookView(kind="cover", index=0, title=sess.title, imageUrl=sess.selected_cover,
                            text=f"By {sess.student_name}")
        if idx <= len(sess.pages):
            page = sess.pages[idx - 1]
            return BookView(kind="page", index=idx, imageUrl=page.imageUrl, text=page.text, pageNumber=idx)
        return BookView(kind="end", index=idx, title="THE END", text=f"You did it, {sess.student_name}!")

    def _snapshot(self, sess: _Session) -> GameState:
        state = GameState(
            sessionId=sess.id,
            phase=sess.phase,
            studentName=sess.student_name,
            character=sess.character,
            title=sess.title,
            selectedCover=sess.selected_cover,
            currentLevel=sess.current_level,
            pages=list(sess.pages),
        )
        if sess.phase == GamePhase.WELCOME:
            state.greeting = f"Hi, {sess.student_name}!"

        stage = sess.stage
        if isinstance(stage, _CoverStage):
            state.covers = list(stage.covers)
            state.status = stage.status
            state.error = stage.error
        elif isinstance(stage, _WritingStage):
            state.challenge = stage.challenge
            state.feedback = stage.feedback
            state.isFalling = self._is_falling(stage)
            state.status = stage.status
            state.error = stage.error
        elif isinstance(stage, _ImageStage):
            state.sentence = stage.sentence
            state.illustrations = list(stage.options)
        elif isinstance(stage, _BookStage):
            state.viewPageIdx = stage.view_idx
            state.view = self._book_view(sess, stage.view_idx)
        return state

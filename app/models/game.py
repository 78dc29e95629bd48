from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.studio import LoadingState


MAX_LEVELS = 6


class GamePhase(str, Enum):
    ENTER_NAME = "ENTER_NAME"
    WELCOME = "WELCOME"
    SELECT_CHAR = "SELECT_CHAR"
    SELECT_TITLE = "SELECT_TITLE"
    SELECT_COVER = "SELECT_COVER"
    WRITING = "WRITING"
    SELECT_IMAGE = "SELECT_IMAGE"
    BOOK_VIEW = "BOOK_VIEW"


class Character(BaseModel):
    id: str
    name: str
    icon: str


CHARACTERS: List[Character] = [
    Character(id="dolphin", name="Dolphin", icon="🐬"),
    Character(id="elephant", name="Elephant", icon="🐘"),
    Character(id="lion", name="Lion", icon="🦁"),
    Character(id="giraffe", name="Giraffe", icon="🦒"),
    Character(id="tiger", name="Tiger", icon="🐯"),
    Character(id="shark", name="Shark", icon="🦈"),
]


class WritingChallenge(BaseModel):
    topic: str
    stepDescription: str
    difficulty: str
    exampleSentence: str = ""


class ChallengeResult(BaseModel):
    isCorrect: bool
    feedback: str


class BookPage(BaseModel):
    text: str
    imageUrl: str


class Feedback(BaseModel):
    text: str
    type: str  # "success" | "error"


class BookView(BaseModel):
    kind: str  # "cover" | "page" | "end"
    index: int
    title: Optional[str] = None
    imageUrl: Optional[str] = None
    text: Optional[str] = None
    pageNumber: Optional[int] = None


class GameState(BaseModel):
    """
    Instantané public d'une session. Les champs propres à une phase
    ne sont renseignés que dans cette phase.
    """
    sessionId: str
    phase: GamePhase
    status: LoadingState = LoadingState.idle
    error: Optional[str] = None
    studentName: str = ""
    greeting: Optional[str] = None
    character: Optional[Character] = None
    title: str = ""
    selectedCover: str = ""
    currentLevel: int = 1
    maxLevels: int = MAX_LEVELS
    pages: List[BookPage] = Field(default_factory=list)
    covers: List[str] = Field(default_factory=list)
    challenge: Optional[WritingChallenge] = None
    feedback: Optional[Feedback] = None
    isFalling: bool = False
    sentence: Optional[str] = None
    illustrations: List[str] = Field(default_factory=list)
    viewPageIdx: Optional[int] = None
    view: Optional[BookView] = None


class NameRequest(BaseModel):
    name: str


class CharacterChoiceRequest(BaseModel):
    characterId: str


class TitleRequest(BaseModel):
    title: str


class ChoiceRequest(BaseModel):
    index: int = Field(..., ge=0)


class SentenceRequest(BaseModel):
    sentence: str


class CharacterListResponse(BaseModel):
    items: List[Character]


class DeleteResponse(BaseModel):
    ok: bool = True
    id: Optional[str] = None

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class LoadingState(str, Enum):
    idle = "idle"
    loading = "loading"
    success = "success"
    error = "error"


class GameIdea(BaseModel):
    title: str
    genre: str
    platform: str
    coreLoop: str
    uniqueSellingPoint: str
    storySynopsis: str


class CharacterStats(BaseModel):
    strength: float
    agility: float
    intelligence: float
    charisma: float

    @field_validator("strength", "agility", "intelligence", "charisma")
    @classmethod
    def _clamp(cls, v: float) -> float:
        # Les stats sont affichées sur un radar gradué de 0 à 10
        return min(10.0, max(0.0, v))


class CharacterProfile(BaseModel):
    name: str
    role: str
    backstory: str
    stats: CharacterStats
    imageUrl: Optional[str] = None


class WorldLore(BaseModel):
    regionName: str
    climate: str
    factions: List[str]
    history: str
    keyLocations: List[str]


class IdeaRequest(BaseModel):
    genre: str = Field(..., min_length=1)
    theme: str = Field(default="")
    style: str = Field(default="")


class CharacterRequest(BaseModel):
    archetype: str = Field(..., min_length=1)
    traits: str = Field(default="")


class CharacterResponse(CharacterProfile):
    imageStatus: LoadingState = LoadingState.idle


class WorldRequest(BaseModel):
    setting: str = Field(..., min_length=1)
    tone: str = Field(default="")

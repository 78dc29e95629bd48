import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.core.deps import get_ai_gateway
from app.main import create_app
from app.models.game import ChallengeResult, WritingChallenge
from app.models.studio import CharacterProfile, CharacterStats, GameIdea, WorldLore
from app.services.ai_gateway import GatewayError


class FakeGateway:
    """
    Passerelle IA scriptée pour les tests : réponses déterministes,
    chaque appel est journalisé dans `calls`.
    - Une phrase de 2 mots ou moins, ou sans "was"/"-ed", est refusée.
    - `fail` : noms d'opérations qui lèvent GatewayError.
    """

    def __init__(self):
        self.calls = []
        self.fail = set()
        self.image_counter = 0

    def _check(self, op):
        if op in self.fail:
            raise GatewayError(f"{op} failed")

    async def request_challenge(self, level, character, title):
        self.calls.append(("challenge", level, character, title))
        self._check("challenge")
        return WritingChallenge(
            topic=f"Level {level}",
            stepDescription=f"Write about the {character} in the past tense.",
            difficulty="easy",
        )

    async def validate_sentence(self, challenge, sentence):
        self.calls.append(("validate", challenge.topic, sentence))
        self._check("validate")
        words = sentence.split()
        if len(words) <= 2:
            return ChallengeResult(isCorrect=False, feedback="Please write a full sentence!")
        if not any(w.lower().strip(".,!") == "was" or w.lower().strip(".,!").endswith("ed") for w in words):
            return ChallengeResult(isCorrect=False, feedback="Use past tense (lived, was, etc.)!")
        return ChallengeResult(isCorrect=True, feedback="Great job! Your story is moving!")

    async def request_illustration(self, sentence, style, character):
        self.calls.append(("illustration", sentence, style, character))
        self._check("illustration")
        self.image_counter += 1
        return f"data:image/png;base64,IMG{self.image_counter}"

    async def request_cover_illustration(self, title, character):
        self.calls.append(("cover", title, character))
        self._check("cover")
        self.image_counter += 1
        return f"data:image/png;base64,COVER{self.image_counter}"

    async def request_character_profile(self, archetype, traits):
        self.calls.append(("character_profile", archetype, traits))
        self._check("character_profile")
        return CharacterProfile(
            name="Kara",
            role=archetype,
            backstory="Raised by wolves in the northern steppe, Kara learned to track before she could read.",
            stats=CharacterStats(strength=7, agility=9, intelligence=6, charisma=4),
        )

    async def request_game_idea(self, genre, theme, style):
        self.calls.append(("game_idea", genre, theme, style))
        self._check("game_idea")
        return GameIdea(
            title="Tide Keepers",
            genre=genre,
            platform="PC",
            coreLoop="Explore, gather, build",
            uniqueSellingPoint="The ocean level changes with every choice",
            storySynopsis="A lighthouse keeper fights the rising sea.",
        )

    async def request_world_lore(self, setting, tone):
        self.calls.append(("world_lore", setting, tone))
        self._check("world_lore")
        return WorldLore(
            regionName="Ashen Reach",
            climate="Dry and windy",
            factions=["Ember Guild", "Salt Monks"],
            history="Once a sea, now a desert of glass.",
            keyLocations=["The Glass Dunes", "Old Harbor"],
        )


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def test_client(monkeypatch, fake_gateway):
    """
    Crée un TestClient isolé (nouvelle app, nouvelles sessions de jeu)
    avec la passerelle IA remplacée par FakeGateway.
    """
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("APP_NAME", "GameGenesis Studio API (tests)")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("FALL_ANIMATION_MS", "0")  # pas d'attente entre deux essais

    # IMPORTANT: vider le cache des settings pour prendre en compte les env
    get_settings.cache_clear()

    app = create_app()
    app.dependency_overrides[get_ai_gateway] = lambda: fake_gateway
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
    get_settings.cache_clear()

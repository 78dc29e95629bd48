import logging
from typing import Optional, Type, TypeVar

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from app.core.config import Settings
from app.models.game import ChallengeResult, WritingChallenge
from app.models.studio import CharacterProfile, GameIdea, WorldLore
from app.services import prompts

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class GatewayError(Exception):
    """Appel IA en échec : transport, timeout ou réponse inexploitable."""


class GatewayConfigError(GatewayError):
    """Identifiants absents : aucun appel IA possible."""


def _strip_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else content[3:]
        if content.endswith("```"):
            content = content[:-3]
        content = content.strip()
    return content


class AiGateway:
    """
    Passerelle vers le service d'IA générative.
    - Sorties structurées : prompt + JSON schema → modèle pydantic validé.
    - Images : payload base64 → data URI ("" si la réponse n'en contient pas).
    Aucune relance : toute erreur remonte en GatewayError.
    """

    def __init__(self, client: AsyncOpenAI, settings: Settings):
        self._client = client
        self._settings = settings

    @classmethod
    def from_settings(cls, settings: Settings) -> "AiGateway":
        if not settings.OPENAI_API_KEY:
            raise GatewayConfigError("OPENAI_API_KEY manquant")
        client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
            max_retries=0,
        )
        return cls(client, settings)

    # ---------- writing game ----------

    async def request_challenge(self, level: int, character: str, title: str) -> WritingChallenge:
        return await self._structured(
            "challenge",
            prompts.build_challenge_prompt(level, character, title),
            prompts.CHALLENGE_SCHEMA,
            WritingChallenge,
            system=prompts.SYSTEM_INSTRUCTION,
        )

    async def validate_sentence(self, challenge: WritingChallenge, sentence: str) -> ChallengeResult:
        return await self._structured(
            "validation",
            prompts.build_validation_prompt(challenge.topic, sentence),
            prompts.VALIDATION_SCHEMA,
            ChallengeResult,
        )

    async def request_illustration(self, sentence: str, style: str, character: str) -> str:
        return await self._image("illustration", prompts.build_illustration_prompt(sentence, style, character))

    async def request_cover_illustration(self, title: str, character: str) -> str:
        return await self._image("cover", prompts.build_cover_prompt(title, character))

    # ---------- studio ----------

    async def request_character_profile(self, archetype: str, traits: str) -> CharacterProfile:
        return await self._structured(
            "character_profile",
            prompts.build_character_prompt(archetype, traits),
            prompts.CHARACTER_SCHEMA,
            CharacterProfile,
        )

    async def request_game_idea(self, genre: str, theme: str, style: str) -> GameIdea:
        return await self._structured(
            "game_idea",
            prompts.build_game_idea_prompt(genre, theme, style),
            prompts.GAME_IDEA_SCHEMA,
            GameIdea,
        )

    async def request_world_lore(self, setting: str, tone: str) -> WorldLore:
        return await self._structured(
            "world_lore",
            prompts.build_world_prompt(setting, tone),
            prompts.WORLD_SCHEMA,
            WorldLore,
        )

    # ---------- internals ----------

    async def _structured(
        self,
        name: str,
        prompt: str,
        schema: dict,
        model: Type[M],
        system: Optional[str] = None,
    ) -> M:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            completion = await self._client.chat.completions.create(
                model=self._settings.OPENAI_TEXT_MODEL,
                messages=messages,
                temperature=0.7,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": name, "schema": schema, "strict": True},
                },
            )
        except OpenAIError as e:
            logger.warning("AI call %s failed: %s", name, e)
            raise GatewayError(f"Échec de l'appel IA ({name})") from e

        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""
        content = _strip_fences(content)
        if not content:
            logger.warning("AI call %s returned an empty payload", name)
            raise GatewayError(f"Réponse IA vide ({name})")

        try:
            return model.model_validate_json(content)
        except ValidationError as e:
            logger.warning("AI call %s returned malformed JSON: %s", name, e)
            raise GatewayError(f"Réponse IA invalide ({name})") from e

    async def _image(self, name: str, prompt: str) -> str:
        kwargs = {}
        # gpt-image-* renvoie toujours du base64 ; dall-e doit le demander
        if self._settings.OPENAI_IMAGE_MODEL.startswith("dall-e"):
            kwargs["response_format"] = "b64_json"

        try:
            resp = await self._client.images.generate(
                model=self._settings.OPENAI_IMAGE_MODEL,
                prompt=prompt,
                size=self._settings.OPENAI_IMAGE_SIZE,
                n=1,
                **kwargs,
            )
        except OpenAIError as e:
            logger.warning("AI image %s failed: %s", name, e)
            raise GatewayError(f"Échec de la génération d'image ({name})") from e

        data = getattr(resp, "data", None) or []
        b64 = data[0].b64_json if data else None
        if not b64:
            logger.info("AI image %s: no image payload in response", name)
            return ""
        return f"data:image/png;base64,{b64}"

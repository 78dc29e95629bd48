from typing import Dict, List


SYSTEM_INSTRUCTION = """You are a helpful English teacher for young children (A1-A2 level).
Your task is to help them write a story using SIMPLE PAST TENSE.
The story must be about a specific animal.

STORY STEPS:
1. Habitat: Where did it live? (e.g., "The lion lived in the forest.")
2. Life: What did it do? (e.g., "He played with friends.")
3. Problem: What happened? (e.g., "One day, he lost his ball.")
4. Help: What did he do? (e.g., "He looked for his ball.")
5. Solution: How was it fixed? (e.g., "He found the ball under a tree.")
6. Ending: How did it end? (e.g., "He was very happy.")

CRITICAL RULES:
- Use only A1-A2 level English.
- ALWAYS ask for a FULL SENTENCE.
- ALWAYS ask for PAST TENSE (lived, was, went, played).
- DO NOT accept single words (e.g., "Forest" is WRONG).
- Provide feedback in simple English."""

STORY_STEPS: List[Dict[str, str]] = [
    {"type": "Habitat", "prompt": "Where did the animal live? Write a full sentence using 'lived' or 'was'."},
    {"type": "Daily Life", "prompt": "What did the animal do every day? Write a sentence in the past tense."},
    {"type": "The Problem", "prompt": "Oh no! A problem happened! Write a sentence about the problem in the past."},
    {"type": "Action", "prompt": "What did the animal do to solve the problem? Write a sentence about the plan."},
    {"type": "The Solution", "prompt": "Did it work? Write a sentence about how the animal fixed the problem."},
    {"type": "The Ending", "prompt": "The story is over! Write a final sentence about the animal being happy."},
]


def story_step(level: int) -> Dict[str, str]:
    """Étape narrative d'un niveau (1-based), cyclique sur les 6 étapes."""
    return STORY_STEPS[(level - 1) % len(STORY_STEPS)]


def build_challenge_prompt(level: int, character: str, title: str) -> str:
    step = story_step(level)
    return (
        f'Create a challenge for a kid writing a story about a {character} titled "{title}".\n'
        f"PHASE: {step['type']}\n"
        f"GOAL: {step['prompt']}\n\n"
        "Return JSON with topic, stepDescription, and difficulty.\n"
        "IMPORTANT: The stepDescription MUST tell them to use the past tense clearly."
    )


def build_validation_prompt(topic: str, sentence: str) -> str:
    return (
        f'Task: "{topic}". User Input: "{sentence}".\n\n'
        "VALIDATION RULES:\n"
        '1. If input is 1 or 2 words (like "Forest" or "Blue lion"): isCorrect = FALSE. '
        'Feedback: "Please write a full sentence!"\n'
        "2. If input is NOT in the past tense (no 'was', 'lived', 'found', '-ed'): isCorrect = FALSE. "
        'Feedback: "Use past tense (lived, was, etc.)!"\n'
        '3. Otherwise: isCorrect = TRUE. Feedback: "Great job! Your story is moving!"\n\n'
        'Return JSON { "isCorrect": boolean, "feedback": "string" }'
    )


def build_illustration_prompt(sentence: str, style: str, character: str) -> str:
    return (
        f'Cute cartoon children\'s book illustration: "{sentence}". Hero: {character}. '
        f"Style: {style}. Simple shapes, vibrant colors, magical, no text."
    )


def build_cover_prompt(title: str, character: str) -> str:
    return (
        f'Stunning children\'s book cover: "{title}". Hero: {character}. '
        "Colorful, magical, professional digital art, no letters or text."
    )


def build_game_idea_prompt(genre: str, theme: str, style: str) -> str:
    return f"JSON game idea with genre: {genre}, theme: {theme}, style: {style}."


def build_character_prompt(archetype: str, traits: str) -> str:
    return f"JSON character profile for archetype: {archetype} and traits: {traits}."


def build_world_prompt(setting: str, tone: str) -> str:
    return f"JSON world lore for setting: {setting} and tone: {tone}."


# JSON schemas (format "strict" d'OpenAI : tout champ est requis, pas d'extra)

def _object(properties: Dict[str, dict]) -> dict:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


_STR = {"type": "string"}
_NUM = {"type": "number"}
_STR_LIST = {"type": "array", "items": {"type": "string"}}

CHALLENGE_SCHEMA = _object({"topic": _STR, "stepDescription": _STR, "difficulty": _STR})

VALIDATION_SCHEMA = _object({"isCorrect": {"type": "boolean"}, "feedback": _STR})

GAME_IDEA_SCHEMA = _object({
    "title": _STR,
    "genre": _STR,
    "platform": _STR,
    "coreLoop": _STR,
    "uniqueSellingPoint": _STR,
    "storySynopsis": _STR,
})

CHARACTER_SCHEMA = _object({
    "name": _STR,
    "role": _STR,
    "backstory": _STR,
    "stats": _object({"strength": _NUM, "agility": _NUM, "intelligence": _NUM, "charisma": _NUM}),
})

WORLD_SCHEMA = _object({
    "regionName": _STR,
    "climate": _STR,
    "factions": _STR_LIST,
    "history": _STR,
    "keyLocations": _STR_LIST,
})

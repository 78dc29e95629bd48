import asyncio

import pytest
from fastapi import HTTPException

from app.models.game import GamePhase
from app.models.studio import LoadingState
from app.services.game_engine import GameEngine
from app.services.prompts import STORY_STEPS, story_step


class FakeClock:
    def __init__(self, t=1000.0):
        self.t = t

    def __call__(self):
        return self.t


async def _to_writing(engine, gateway):
    sid = engine.start().sessionId
    engine.enter_name(sid, "Mia")
    engine.confirm_welcome(sid)
    engine.select_character(sid, "lion")
    await engine.set_title(sid, "The Lion King", gateway)
    await engine.choose_cover(sid, 0, gateway)
    return sid


def test_story_step_cycles_over_six_phases():
    names = [story_step(level)["type"] for level in range(1, 13)]
    assert names[:6] == ["Habitat", "Daily Life", "The Problem", "Action", "The Solution", "The Ending"]
    assert names[6:] == names[:6]
    for level in range(1, 7):
        assert story_step(level) is STORY_STEPS[(level - 1) % 6]


def test_fall_window_blocks_resubmission(fake_gateway):
    clock = FakeClock()
    engine = GameEngine(fall_ms=800, clock=clock)

    async def scenario():
        sid = await _to_writing(engine, fake_gateway)
        state = await engine.submit_sentence(sid, "Forest", fake_gateway)
        assert state.isFalling is True
        assert state.feedback.type == "error"

        with pytest.raises(HTTPException) as exc:
            await engine.submit_sentence(sid, "He was happy.", fake_gateway)
        assert exc.value.status_code == 409

        clock.t += 0.5
        assert engine.get(sid).isFalling is True
        clock.t += 0.31
        assert engine.get(sid).isFalling is False

        state = await engine.submit_sentence(sid, "He was happy.", fake_gateway)
        assert state.phase == GamePhase.SELECT_IMAGE

    asyncio.run(scenario())


def test_failed_validation_never_touches_pages_or_level(fake_gateway):
    engine = GameEngine(fall_ms=0)

    async def scenario():
        sid = await _to_writing(engine, fake_gateway)
        await engine.submit_sentence(sid, "He was happy.", fake_gateway)
        await engine.choose_illustration(sid, 0, fake_gateway)
        before = engine.get(sid)
        for attempt in ("Forest", "Blue lion", "The lion eats grass"):
            state = await engine.submit_sentence(sid, attempt, fake_gateway)
            assert state.phase == GamePhase.WRITING
            assert state.currentLevel == before.currentLevel == 2
            assert state.pages == before.pages

    asyncio.run(scenario())


def test_response_after_reset_is_discarded(fake_gateway):
    engine = GameEngine(fall_ms=0)

    async def scenario():
        sid = await _to_writing(engine, fake_gateway)
        gate = asyncio.Event()
        validate = fake_gateway.validate_sentence

        async def slow_validate(challenge, sentence):
            await gate.wait()
            return await validate(challenge, sentence)

        fake_gateway.validate_sentence = slow_validate
        task = asyncio.create_task(engine.submit_sentence(sid, "He was happy.", fake_gateway))
        await asyncio.sleep(0)
        assert engine.get(sid).status == LoadingState.loading

        # Une seconde soumission pendant le chargement est refusée
        with pytest.raises(HTTPException) as exc:
            await engine.submit_sentence(sid, "He was sad.", fake_gateway)
        assert exc.value.status_code == 409

        engine.reset(sid)
        gate.set()
        return await task

    state = asyncio.run(scenario())
    assert state.phase == GamePhase.ENTER_NAME
    assert state.pages == []
    assert state.illustrations == []


def test_session_expires_after_ttl(fake_gateway):
    clock = FakeClock()
    engine = GameEngine(ttl_seconds=10, clock=clock)
    sid = engine.start().sessionId
    clock.t += 11
    with pytest.raises(HTTPException) as exc:
        engine.get(sid)
    assert exc.value.status_code == 404
    assert exc.value.detail == "Session expirée."


def test_challenge_requested_per_level(fake_gateway):
    engine = GameEngine(fall_ms=0)

    async def scenario():
        sid = await _to_writing(engine, fake_gateway)
        for _ in range(3):
            await engine.submit_sentence(sid, "He was happy.", fake_gateway)
            await engine.choose_illustration(sid, 0, fake_gateway)
        # Déjà en cache pour le niveau courant : pas de nouvel appel
        await engine.load_challenge(sid, fake_gateway)
        return sid

    asyncio.run(scenario())
    levels = [c[1] for c in fake_gateway.calls if c[0] == "challenge"]
    assert levels == [1, 2, 3, 4]

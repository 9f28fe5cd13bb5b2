"""
Tests for one-shot voice capture.
"""

import asyncio

import pytest

from src.askvedic.advisories import AdvisoryBoard, AdvisoryChannel
from src.askvedic.capture import PERMISSION_DENIED_MESSAGE, VoiceCaptureController
from src.askvedic.language import LanguageState


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


def make_controller(recognition, *, language="en-IN"):
    state = LanguageState()
    state.set(language)
    board = AdvisoryBoard(transient_seconds=10)
    transcripts = []
    submitted = []

    async def on_submit(text):
        submitted.append(text)

    controller = VoiceCaptureController(
        recognition,
        state,
        advisories=board,
        on_transcript=transcripts.append,
        on_submit=on_submit,
    )
    return controller, board, transcripts, submitted


@pytest.mark.asyncio
async def test_result_populates_and_submits(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, _, transcripts, submitted = make_controller(recognition)

    task = asyncio.create_task(controller.capture())
    await settle()
    session = recognition.sessions[0]
    assert session.started
    assert controller.is_listening

    session.emit_result("When is Diwali?")
    assert await asyncio.wait_for(task, timeout=1.0) == "When is Diwali?"

    assert transcripts == ["When is Diwali?"]
    assert submitted == ["When is Diwali?"]
    assert not controller.is_listening
    assert session.stopped


@pytest.mark.asyncio
async def test_default_language_config(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, *_ = make_controller(recognition)

    task = asyncio.create_task(controller.capture())
    await settle()
    config = recognition.sessions[0].config
    assert config.lang == "en-IN"
    assert config.max_alternatives == 1
    assert not config.interim_results

    controller.abort()
    await task


@pytest.mark.asyncio
async def test_hindi_config_requests_alternatives(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, *_ = make_controller(recognition, language="hi-IN")

    task = asyncio.create_task(controller.capture())
    await settle()
    config = recognition.sessions[0].config
    assert config.lang == "hi-IN"
    assert config.max_alternatives == 3
    assert config.interim_results

    controller.stop()
    assert await task is None


@pytest.mark.asyncio
async def test_interim_results_ignored(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, _, transcripts, _ = make_controller(recognition, language="hi-IN")

    task = asyncio.create_task(controller.capture())
    await settle()
    session = recognition.sessions[0]

    session.emit_result("दिवाली", is_final=False)
    await settle()
    assert controller.is_listening

    session.emit_result("दिवाली कब है")
    assert await task == "दिवाली कब है"
    assert transcripts == ["दिवाली कब है"]


@pytest.mark.asyncio
async def test_permission_denied_is_blocking(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, board, _, submitted = make_controller(recognition)

    task = asyncio.create_task(controller.capture())
    await settle()
    recognition.sessions[0].emit_error("not-allowed")

    assert await task is None
    advisory = board.get(AdvisoryChannel.CAPTURE)
    assert advisory.message == PERMISSION_DENIED_MESSAGE
    assert advisory.blocking
    assert advisory.persistent
    assert submitted == []
    assert not controller.is_listening


@pytest.mark.asyncio
async def test_no_speech_is_silent(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, board, *_ = make_controller(recognition)

    task = asyncio.create_task(controller.capture())
    await settle()
    recognition.sessions[0].emit_error("no-speech")

    assert await task is None
    assert board.get(AdvisoryChannel.CAPTURE) is None
    assert controller.last_error == "no-speech"


@pytest.mark.asyncio
async def test_other_errors_are_non_blocking(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, board, *_ = make_controller(recognition)

    task = asyncio.create_task(controller.capture())
    await settle()
    recognition.sessions[0].emit_error("network")

    assert await task is None
    assert board.get(AdvisoryChannel.CAPTURE) is None
    assert not controller.is_listening


@pytest.mark.asyncio
async def test_session_end_without_result(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, _, transcripts, _ = make_controller(recognition)

    task = asyncio.create_task(controller.capture())
    await settle()
    recognition.sessions[0].emit_end()

    assert await task is None
    assert transcripts == []


@pytest.mark.asyncio
async def test_abort_always_stops_listening(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, *_ = make_controller(recognition)

    task = asyncio.create_task(controller.capture())
    await settle()
    session = recognition.sessions[0]

    def failing_abort():
        raise RuntimeError("recognizer already gone")

    session.abort = failing_abort
    controller.abort()

    assert not controller.is_listening
    assert await task is None
    controller.abort()


@pytest.mark.asyncio
async def test_unsupported_platform(fake_recognition_cls):
    controller, board, *_ = make_controller(fake_recognition_cls(supported=False))

    assert await controller.capture() is None
    assert board.get(AdvisoryChannel.CAPTURE).code == "unsupported"


@pytest.mark.asyncio
async def test_second_capture_while_listening_ignored(fake_recognition_cls):
    recognition = fake_recognition_cls()
    controller, *_ = make_controller(recognition)

    task = asyncio.create_task(controller.capture())
    await settle()

    assert await controller.capture() is None
    assert len(recognition.sessions) == 1

    controller.stop()
    await task

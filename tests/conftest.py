import asyncio
import io
import itertools
from types import SimpleNamespace

import pytest
from PIL import Image

from models.turn_models import Transcript
from services.errors import UpstreamUnavailable


def _text_message(message_id, run_id, text, created_at, role="assistant"):
    return SimpleNamespace(
        id=message_id,
        run_id=run_id,
        role=role,
        created_at=created_at,
        content=[SimpleNamespace(type="text", text=SimpleNamespace(value=text))],
    )


class _FakeStream:
    def __init__(self, deltas):
        self._deltas = deltas

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def __aiter__(self):
        yield SimpleNamespace(type="response.created")
        for delta in self._deltas:
            yield SimpleNamespace(type="response.output_text.delta", delta=delta)
        yield SimpleNamespace(type="response.completed")


class FakeOpenAI:
    """Stand-in for AsyncOpenAI covering the Assistants, Responses, and Files calls."""

    def __init__(self, run_statuses=("completed",), reply_text="Hello there friend", vision_text="A small cat"):
        self.run_statuses = list(run_statuses)
        self.reply_text = reply_text
        self.vision_text = vision_text
        self.vision_deltas = ["A ", "small ", "cat"]
        self.calls = {
            "threads.create": 0,
            "messages.create": [],
            "runs.create": [],
            "runs.retrieve": [],
            "messages.list": [],
            "responses.create": [],
            "responses.stream": [],
            "files.create": [],
            "assistants.retrieve": [],
        }
        self.thread_delay = 0.0
        self._thread_ids = itertools.count(1)
        self._run_ids = itertools.count(1)
        self._status_by_run = {}

        self.beta = SimpleNamespace(
            threads=SimpleNamespace(
                create=self._create_thread,
                messages=SimpleNamespace(create=self._create_message, list=self._list_messages),
                runs=SimpleNamespace(create=self._create_run, retrieve=self._retrieve_run),
            ),
            assistants=SimpleNamespace(retrieve=self._retrieve_assistant),
        )
        self.responses = SimpleNamespace(create=self._create_response, stream=self._stream_response)
        self.files = SimpleNamespace(create=self._create_file)
        self.audio = SimpleNamespace(transcriptions=SimpleNamespace(create=self._transcribe))

    async def _create_thread(self):
        self.calls["threads.create"] += 1
        if self.thread_delay:
            await asyncio.sleep(self.thread_delay)
        return SimpleNamespace(id=f"thread_{next(self._thread_ids)}")

    async def _create_message(self, thread_id, **kwargs):
        self.calls["messages.create"].append((thread_id, kwargs))
        return SimpleNamespace(id=f"msg_{len(self.calls['messages.create'])}")

    async def _create_run(self, thread_id, **kwargs):
        run_id = f"run_{next(self._run_ids)}"
        self.calls["runs.create"].append((thread_id, run_id, kwargs))
        self._status_by_run[run_id] = iter(self.run_statuses)
        return SimpleNamespace(id=run_id, status="queued")

    async def _retrieve_run(self, run_id, *, thread_id):
        self.calls["runs.retrieve"].append((thread_id, run_id))
        statuses = self._status_by_run[run_id]
        status = next(statuses, self.run_statuses[-1])
        return SimpleNamespace(id=run_id, status=status)

    async def _list_messages(self, thread_id, **kwargs):
        self.calls["messages.list"].append((thread_id, kwargs))
        run_id = kwargs.get("run_id")
        return SimpleNamespace(
            data=[
                _text_message("msg_new", run_id, self.reply_text, created_at=200),
                _text_message("msg_other", "run_other", "Not this one", created_at=300),
                _text_message("msg_old", run_id, "Earlier partial reply", created_at=100),
            ]
        )

    async def _create_response(self, **kwargs):
        self.calls["responses.create"].append(kwargs)
        return SimpleNamespace(output_text=self.vision_text, output=[])

    def _stream_response(self, **kwargs):
        self.calls["responses.stream"].append(kwargs)
        return _FakeStream(self.vision_deltas)

    async def _create_file(self, **kwargs):
        self.calls["files.create"].append(kwargs)
        return SimpleNamespace(id=f"file_{len(self.calls['files.create'])}")

    async def _retrieve_assistant(self, assistant_id):
        self.calls["assistants.retrieve"].append(assistant_id)
        return SimpleNamespace(id=assistant_id)

    async def _transcribe(self, **kwargs):
        return SimpleNamespace(text="transcribed speech")


class FakeTranscriber:
    """Transcription backend returning a canned result or raising."""

    def __init__(self, name="fake", result=None, error=None, delay=0.0):
        self.name = name
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []

    async def transcribe(self, media_url):
        self.calls.append(media_url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return Transcript(
            text=self.result.text,
            title=self.result.title,
            author=self.result.author,
            source_url=self.result.source_url,
        )


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (32, 24), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_transcriber():
    def _make(name="fake", result=None, error=None, delay=0.0):
        return FakeTranscriber(name=name, result=result, error=error, delay=delay)

    return _make


@pytest.fixture
def unavailable():
    return UpstreamUnavailable("backend down", backend="fake")


@pytest.fixture
def make_openai():
    return FakeOpenAI

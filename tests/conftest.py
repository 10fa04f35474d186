import json
from types import SimpleNamespace

import pytest

import groq_client
from data_client import LocalTableStore
from project_manager import ProjectManager
from production_manager import ProductionManager
from content_generator import ContentGenerator
from pipeline import PipelineRunner


class FakeGroq:
    """Stands in for the Groq SDK client: ``chat.completions.create``.

    Queued replies are returned in order (an Exception in the queue is
    raised); once the queue is empty ``default`` is returned.
    """

    def __init__(self):
        self.replies = []
        self.default = "Generated text."
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, messages, model, temperature, max_tokens):
        self.calls.append({"system": messages[0]["content"], "prompt": messages[1]["content"], "model": model})
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])

    def queue(self, *replies):
        self.replies.extend(replies)


BEAT_SHEET_JSON = json.dumps([
    {"id": "scene-1", "number": 1, "intExt": "INT", "location": "Kitchen", "dayNight": "DAY",
     "description": "Ana burns the toast while reading the eviction letter.", "characters": ["Ana"], "duration": 2},
    {"number": 2, "intExt": "ext", "location": "Street", "dayNight": "NIGHT",
     "description": "Ana walks to the bus stop in the rain.", "characters": "Ana, Driver", "duration": 1.5},
])

STORYLINE_JSON = '```json\n{"act1": "Ana loses her flat.", "act2": "She searches the city.", "act3": "She finds a home."}\n```'


@pytest.fixture
def fake_groq(monkeypatch):
    fake = FakeGroq()
    monkeypatch.setattr(groq_client, "groq_client", fake)
    monkeypatch.setattr(groq_client.time, "sleep", lambda seconds: None)
    return fake


@pytest.fixture
def store(tmp_path):
    return LocalTableStore(str(tmp_path / "data"))


@pytest.fixture
def projects(store):
    return ProjectManager(store)


@pytest.fixture
def production(store):
    return ProductionManager(store)


@pytest.fixture
def image_calls():
    return []


@pytest.fixture
def fake_image(image_calls):
    def generate(prompt):
        image_calls.append(prompt)
        return "data:image/png;base64,iVBORw0KGgo="
    return generate


@pytest.fixture
def runner(projects, production, fake_image):
    return PipelineRunner(projects, production, ContentGenerator(), image_generator=fake_image)


@pytest.fixture
def project(projects):
    return projects.create_project("user-1", "Rain City", "Drama", "short")

import json
import os
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("GEMINI_API_KEY", "test_key")
os.environ.pop("CANVAS_BRIDGE_URL", None)

from canvas_designer.services.canvas import ElementRejected, SurfaceUnavailable  # noqa: E402


class FakeCanvas:
    """Records every attempted element and rejects the ones chosen by the test."""

    def __init__(self, reject_attempts=(), unavailable_after=None, unavailable_message="network down"):
        self.reject_attempts = set(reject_attempts)
        self.unavailable_after = unavailable_after
        self.unavailable_message = unavailable_message
        self.attempts = []
        self.created = []

    def add_element(self, element):
        attempt = len(self.attempts)
        self.attempts.append(element)
        if self.unavailable_after is not None and attempt >= self.unavailable_after:
            raise SurfaceUnavailable(self.unavailable_message)
        if attempt in self.reject_attempts:
            raise ElementRejected(f"rejected attempt {attempt}")
        self.created.append(element)


class ScriptedClient:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.instructions = []

    def generate(self, instruction):
        self.instructions.append(instruction)
        if self.error is not None:
            raise self.error
        return self.reply


def make_design(index=0, **overrides):
    design = {
        "title": f"Coffee Poster {index + 1}",
        "description": "Warm tones with bold headline",
        "colors": ["#4B2E2B", "#C08552", "#FFF8F0"],
        "elements": ["headline", "coffee cup illustration", "border"],
        "layout": "centered headline above illustration",
        "textElements": [
            {"text": "Fresh Brew", "fontSize": 56, "fontWeight": "bold", "color": "#4B2E2B"},
            {"text": "Open daily 7am", "fontSize": 22, "fontWeight": "normal", "color": "#C08552"},
        ],
        "shapes": [{"type": "circle", "color": "#C08552", "width": 160, "height": 160}],
    }
    design.update(overrides)
    return design


@pytest.fixture()
def three_design_reply():
    payload = {"designs": [make_design(i) for i in range(3)]}
    return "```json\n" + json.dumps(payload, indent=2) + "\n```"


@pytest.fixture()
def fake_canvas():
    return FakeCanvas()

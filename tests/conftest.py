"""
Shared fixtures: a small form catalog and a deterministic stand-in for the engine.
"""
import json
import threading

import pytest
from fastapi.testclient import TestClient

from support_portal.api.route import get_assistant
from support_portal.assistant import SupportAssistant
from support_portal.catalog.catalog import CatalogCache
from support_portal.main import app


CATALOG_DOCUMENT = [
    {
        "name": "IT Help",
        "description": "Hardware and software support.",
        "baseURL": "https://it.example/",
        "forms": [
            {
                "path": "/hardware",
                "description": "Report a hardware problem.",
                "keywords": ["laptop", "hardware"],
                "params": [
                    {
                        "name": "hardwareType",
                        "type": "enum",
                        "description": "Kind of device.",
                        "required": True,
                        "options": [{"value": "laptop", "label": "Laptop"}, "desktop"],
                    },
                    {
                        "name": "notes",
                        "type": "string",
                        "description": "Anything else.",
                        "required": False,
                    },
                ],
            }
        ],
    },
    {
        "name": "HR",
        "description": "Payroll and records.",
        "baseURL": "https://hr.example",
        "forms": [
            {
                "path": "/payroll",
                "description": "Report a payroll problem.",
                "params": [
                    {
                        "name": "payPeriod",
                        "type": "string",
                        "description": "Affected pay period.",
                        "required": True,
                    }
                ],
            }
        ],
    },
]


USER_DETAILS = {
    "firstName": "Dana",
    "lastName": "Okafor",
    "jobTitle": "IT Specialist",
    "component": "Front Office",
    "workLocation": "HQ",
    "officeLocation": "Building A, Floor 3, Room 301",
}


class StubGateway:
    """Records calls and returns a canned reply or raises a canned error."""

    def __init__(self, reply: str = "", error: Exception = None, available: bool = True):
        self.reply = reply
        self.error = error
        self.available = available
        self.calls = []

    async def send(self, prompt, prior_turns, user_turn, mode=None, schema=None):
        self.calls.append({
            "prompt": prompt,
            "prior_turns": list(prior_turns),
            "user_turn": user_turn,
            "mode": mode,
            "thread": threading.get_ident(),
        })
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def catalog_path(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text(json.dumps(CATALOG_DOCUMENT), encoding="utf-8")
    return path


@pytest.fixture
def catalog_cache(catalog_path):
    return CatalogCache(catalog_path)


@pytest.fixture
def user_details():
    return dict(USER_DETAILS)


@pytest.fixture
def make_client(catalog_cache):
    """Build a TestClient whose requests run against the given gateway."""
    def _make(gateway, cache=None):
        portal = SupportAssistant(cache or catalog_cache, gateway)
        app.dependency_overrides[get_assistant] = lambda: portal
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()

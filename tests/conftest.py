"""Shared pytest fixtures for sdui tests."""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from sdui.runtime.context import RuntimeContext
from sdui.runtime.network import NetworkClient
from sdui.specs.config import AppConfig
from sdui.state.storage import MemoryStore

SAMPLE_DOCUMENT: dict[str, Any] = {
    "version": 3,
    "theme": {"colors": {"light": {"primary": "#6200EE"}, "dark": {"primary": "#BB86FC"}}},
    "appSettings": {"initialRoute": "home"},
    "appState": [
        {"name": "cartCount", "type": "number", "value": 0, "shouldPersist": True},
        {"name": "userName", "type": "string", "value": "guest"},
        {"name": "loggedIn", "type": "bool", "value": False},
    ],
    "environment": {
        "variables": {"apiHost": {"type": "string", "defaultValue": "https://api.example.com"}}
    },
    "rest": {
        "defaultHeaders": {"X-App": "sdui"},
        "resources": {
            "getUser": {
                "name": "Get user",
                "url": "https://api.example.com/users/{userId}",
                "method": "GET",
                "variables": {"userId": {"type": "string", "defaultValue": "me"}},
            },
            "createOrder": {
                "url": "https://api.example.com/orders",
                "method": "POST",
                "body": {"sku": "{{sku}}", "quantity": "{{quantity}}"},
                "variables": {"sku": {}, "quantity": {"defaultValue": 1}},
            },
        },
    },
    "pages": {
        "home": {
            "initStateDefs": {
                "x": {"type": "number", "defaultValue": 0},
                "y": {"type": "number", "defaultValue": 0},
                "user": {"type": "json"},
                "lastError": {"type": "json"},
            },
            "layout": {
                "root": {
                    "type": "digia/column",
                    "childGroups": {
                        "children": [
                            {"type": "digia/text", "refName": "title", "props": {"text": "x is @{x}"}},
                            {"type": "digia/text", "props": {"text": "@{title.text}"}},
                        ]
                    },
                }
            },
        },
        "list": {},
        "detail": {
            "pageArgDefs": {"id": {"type": "number", "defaultValue": 1}},
            "layout": {"root": {"type": "digia/text", "props": {"text": "Item @{id}"}}},
        },
        "edit": {},
    },
    "components": {
        "counter": {
            "argDefs": {"label": {"type": "string", "defaultValue": "Count"}},
            "initStateDefs": {"count": {"type": "number", "defaultValue": 0}},
            "layout": {"root": {"type": "digia/text", "props": {"text": "@{label}: @{count}"}}},
        },
        "picker": {"layout": {"root": {"type": "digia/text", "props": {"text": "Pick one"}}}},
    },
}


@pytest.fixture
def document() -> dict[str, Any]:
    """A fresh copy of the sample document, safe to mutate."""
    return copy.deepcopy(SAMPLE_DOCUMENT)


@pytest.fixture
def config(document: dict[str, Any]) -> AppConfig:
    return AppConfig.from_dict(document)


class RecordingTransport:
    """httpx handler that records requests and answers from a route table."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={"message": "not found"})
        return handler(request)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def runtime(config: AppConfig, transport: RecordingTransport, store: MemoryStore) -> RuntimeContext:
    network = NetworkClient(transport=httpx.MockTransport(transport))
    return RuntimeContext.create(config, store=store, network=network)

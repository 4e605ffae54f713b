"""Tests for descriptor models and document loading."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from sdui.errors import ConfigurationError
from sdui.expr.scope import ScopeContext
from sdui.specs.api import ApiModel, BodyType, HttpMethod, substitute
from sdui.specs.config import AppConfig
from sdui.specs.node import NodeData, node
from sdui.specs.page import PageDefinition, resolve_args


class TestNodeData:
    def test_camel_case_aliases(self) -> None:
        data = NodeData.model_validate(
            {
                "type": "digia/column",
                "refName": "col",
                "containerProps": {"visibility": "@{show}"},
                "childGroups": {"children": [{"type": "digia/text"}]},
            }
        )
        assert data.ref_name == "col"
        assert data.common_props == {"visibility": "@{show}"}
        assert [child.type for child in data.children()] == ["digia/text"]

    def test_walk_is_depth_first(self) -> None:
        tree = node("digia/column").child(node("digia/row").child(node("digia/text"))).child(node("digia/icon")).build()
        assert [n.type for n in tree.walk()] == ["digia/column", "digia/row", "digia/text", "digia/icon"]

    def test_builder(self) -> None:
        built = (
            node("digia/button")
            .ref("buy")
            .props(text="Buy")
            .visible_if("@{inStock}")
            .on_click({"type": "Action.showToast", "data": {"message": "ok"}})
            .build()
        )
        assert built.ref_name == "buy"
        assert built.props == {"text": "Buy"}
        assert built.common_props is not None
        assert built.common_props["visibility"] == "@{inStock}"
        assert built.common_props["onClick"]["actions"][0]["type"] == "Action.showToast"

    def test_is_immutable(self) -> None:
        data = NodeData(type="digia/text")
        with pytest.raises(ValueError):
            data.type = "digia/icon"  # type: ignore[misc]


class TestPageDefinition:
    def test_resolve_args(self) -> None:
        page = PageDefinition.model_validate(
            {"uid": "detail", "pageArgDefs": {"id": {"defaultValue": 1}, "tab": {"defaultValue": "info"}}}
        )
        assert page.resolve_args({"id": 7, "tab": None, "extra": True}) == {"id": 7, "tab": "info", "extra": True}

    def test_initial_state(self) -> None:
        page = PageDefinition.model_validate({"uid": "home", "initStateDefs": {"count": {"defaultValue": 0}}})
        assert page.initial_state() == {"count": 0}

    def test_resolve_args_without_defs(self) -> None:
        assert resolve_args(None, None) == {}


class TestAppConfig:
    def test_ids_are_injected(self, config: AppConfig) -> None:
        assert config.get_page("home") is not None
        assert config.get_page("home").uid == "home"  # type: ignore[union-attr]
        assert config.get_component("counter").uid == "counter"  # type: ignore[union-attr]
        assert config.get_api_model("getUser").id == "getUser"  # type: ignore[union-attr]

    def test_missing_lookups_return_none(self, config: AppConfig) -> None:
        assert config.get_page("nope") is None
        assert config.get_component("nope") is None
        assert config.get_api_model("nope") is None

    def test_environment_and_theme(self, config: AppConfig) -> None:
        assert config.env_variables() == {"apiHost": "https://api.example.com"}
        assert config.color("primary") == "#6200EE"
        assert config.color("primary", dark=True) == "#BB86FC"
        assert config.initial_route == "home"

    def test_initial_route_must_exist(self, document: dict[str, Any]) -> None:
        document["appSettings"]["initialRoute"] = "missing"
        with pytest.raises(ConfigurationError):
            AppConfig.from_dict(document)

    def test_from_json_rejects_bad_json(self) -> None:
        with pytest.raises(ConfigurationError):
            AppConfig.from_json("{nope")

    def test_from_file(self, tmp_path: Path, document: dict[str, Any]) -> None:
        path = tmp_path / "app.json"
        path.write_text(json.dumps(document))
        assert set(AppConfig.from_file(path).pages) == {"home", "list", "detail", "edit"}

    def test_from_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            AppConfig.from_file(tmp_path / "missing.json")


class TestApiModel:
    def test_placeholders_use_defaults_and_args(self, config: AppConfig) -> None:
        model = config.get_api_model("getUser")
        assert model is not None
        assert model.build_request(None, None).url == "https://api.example.com/users/me"
        assert model.build_request({"userId": 42}, None).url == "https://api.example.com/users/42"

    def test_whole_placeholder_keeps_type(self, config: AppConfig) -> None:
        model = config.get_api_model("createOrder")
        assert model is not None
        request = model.build_request({"sku": "A-1"}, None)
        assert request.method == HttpMethod.POST
        assert request.body == {"sku": "A-1", "quantity": 1}
        assert request.body_type == BodyType.JSON

    def test_bindings_see_scope_and_variables(self) -> None:
        model = ApiModel(
            id="search",
            url="/search?q=@{query}&page=@{page}",
            headers={"Authorization": "Bearer @{token}"},
        )
        scope = ScopeContext("page", {"token": "t0k", "page": 1})
        request = model.build_request({"query": "shoes"}, scope)
        assert request.url == "/search?q=shoes&page=1"
        assert request.headers == {"Authorization": "Bearer t0k"}

    def test_default_headers_are_merged(self, config: AppConfig) -> None:
        model = config.get_api_model("getUser")
        assert model is not None
        request = model.build_request(None, None, config.rest.default_headers)
        assert request.headers == {"X-App": "sdui"}

    def test_substitute_leaves_unknown_and_bindings(self) -> None:
        assert substitute("/a/{known}/{unknown}", {"known": 1}) == "/a/1/{unknown}"
        assert substitute("@{known}", {"known": 1}) == "@{known}"

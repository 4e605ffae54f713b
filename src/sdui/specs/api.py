"""
REST resource definitions (the document's ``rest.resources``).
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sdui.expr.coerce import to_text
from sdui.expr.expr_or import deep_evaluate
from sdui.expr.scope import ScopeContext
from sdui.specs.page import VariableDef, resolve_args

# {{name}} or {name}, but not the @{...} binding form
_PLACEHOLDER_RE = re.compile(r"(?<!@)\{\{\s*([A-Za-z_$][\w$]*)\s*\}\}|(?<!@)\{([A-Za-z_$][\w$]*)\}")


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class BodyType(StrEnum):
    JSON = "JSON"
    FORM = "FORM"
    MULTIPART = "MULTIPART"
    GRAPHQL = "GRAPHQL"


class ApiRequest(BaseModel):
    """A fully substituted request, ready for the network client."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    body_type: BodyType = BodyType.JSON
    api_name: str | None = None


class ApiModel(BaseModel):
    """
    A named REST call.

    Example:
        ApiModel(
            id="getUser",
            url="/users/{userId}",
            method="GET",
            variables={"userId": VariableDef(type="string", default_value="me")},
        )
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Resource id referenced by callRestApi actions")
    name: str | None = Field(default=None)
    url: str = Field(description="Absolute URL or path relative to the base URL")
    method: HttpMethod = Field(default=HttpMethod.GET)
    headers: dict[str, Any] | None = Field(default=None)
    body: Any = Field(default=None)
    body_type: BodyType | None = Field(default=None)
    variables: dict[str, VariableDef] | None = Field(default=None)

    def build_request(
        self,
        args: Mapping[str, Any] | None,
        scope: ScopeContext | None,
        default_headers: Mapping[str, Any] | None = None,
    ) -> ApiRequest:
        """Substitute ``{var}`` placeholders and ``@{...}`` bindings.

        Placeholder values come from the declared variables' defaults
        overridden by ``args``; bindings evaluate against ``scope`` with
        those variables overlaid.
        """
        values = resolve_args(self.variables, args)
        local = scope.child("api", values) if scope is not None else ScopeContext("api", values)

        headers: dict[str, str] = {}
        for source in (default_headers or {}, self.headers or {}):
            for key, raw in source.items():
                text = to_text(deep_evaluate(substitute(raw, values), local))
                if text is not None:
                    headers[key] = text

        return ApiRequest(
            method=self.method,
            url=to_text(deep_evaluate(substitute(self.url, values), local)) or "",
            headers=headers,
            body=deep_evaluate(substitute(self.body, values), local),
            body_type=self.body_type or BodyType.JSON,
            api_name=self.name,
        )


def substitute(raw: Any, values: Mapping[str, Any]) -> Any:
    """Replace placeholders inside strings of a JSON-like value.

    A string that is exactly one placeholder becomes the raw value; other
    occurrences are replaced by their text form. Unknown names are left
    as written.
    """
    if isinstance(raw, str):
        match = _PLACEHOLDER_RE.fullmatch(raw)
        if match:
            name = match.group(1) or match.group(2)
            return values[name] if name in values else raw
        return _PLACEHOLDER_RE.sub(lambda m: _replace(m, values), raw)
    if isinstance(raw, Mapping):
        return {key: substitute(value, values) for key, value in raw.items()}
    if isinstance(raw, list):
        return [substitute(item, values) for item in raw]
    return raw


def _replace(match: re.Match[str], values: Mapping[str, Any]) -> str:
    name = match.group(1) or match.group(2)
    if name not in values:
        return match.group(0)
    return to_text(values[name]) or ""

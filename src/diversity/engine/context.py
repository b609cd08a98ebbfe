# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Resolve the context a component declares before its template is rendered."""

from __future__ import annotations

import itertools
import json
import logging
import re
import ssl
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from typing import Final, Protocol, runtime_checkable

from ..errors import ContextResolutionError, MissingPrerequisite, UnknownContextVariable
from ..types import JSONValue

LOGGER = logging.getLogger(__name__)

PREREQUISITE: Final[str] = "prerequisite"
JSONRPC: Final[str] = "jsonrpc"
_PLACEHOLDER: Final[re.Pattern[str]] = re.compile(r"\{\{\s*(.+?)\s*\}\}")

Transport = Callable[[str, bytes], bytes]


@runtime_checkable
class ContextResolver(Protocol):
    """Turn a component's declared context into template data."""

    def resolve(
        self,
        backend_url: str | None,
        declared: Mapping[str, JSONValue],
        caller_context: Mapping[str, JSONValue],
        *,
        owner: str = "component",
    ) -> dict[str, JSONValue]:
        """Return the resolved context for one component.

        Args:
            backend_url: JSON-RPC endpoint used for ``jsonrpc`` entries.
            declared: Context entries declared in the component spec.
            caller_context: Context passed to the render call.
            owner: Display identity of the component, used in messages.

        Returns:
            dict[str, JSONValue]: Resolved values keyed like ``declared``.

        Raises:
            ContextResolutionError: If an entry cannot be resolved.
        """


def urllib_transport(url: str, payload: bytes, *, timeout: float = 10.0) -> bytes:
    """POST ``payload`` as JSON to ``url`` and return the response body.

    Raises:
        ContextResolutionError: If the backend cannot be reached or answers with an error status.
    """

    request = urllib.request.Request(
        url,
        data=payload,
        headers={"Content-Type": "application/json", "Accept": "application/json"},
        method="POST",
    )
    opener = urllib.request.build_opener(urllib.request.HTTPSHandler(context=ssl.create_default_context()))
    try:
        with opener.open(request, timeout=timeout) as response:
            return response.read()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise ContextResolutionError(f"JSON-RPC call to {url} failed: {exc}") from exc


class JsonRpcContextResolver:
    """ContextResolver calling a JSON-RPC 2.0 backend for ``jsonrpc`` entries.

    Non-object entries are literal values. Object entries without a ``type``
    are passed through with a warning. ``prerequisite`` entries copy the value
    of the same key from the caller context. ``jsonrpc`` entries substitute
    ``{{name}}`` placeholders in their string parameters with caller-context
    values, then call ``method`` on the backend.
    """

    def __init__(self, *, transport: Transport | None = None) -> None:
        self._transport = transport or urllib_transport
        self._ids = itertools.count(1)

    def resolve(
        self,
        backend_url: str | None,
        declared: Mapping[str, JSONValue],
        caller_context: Mapping[str, JSONValue],
        *,
        owner: str = "component",
    ) -> dict[str, JSONValue]:
        resolved: dict[str, JSONValue] = {}
        for key, entry in declared.items():
            if not isinstance(entry, Mapping):
                resolved[key] = entry
                continue
            kind = entry.get("type")
            if kind is None:
                LOGGER.warning("%s has context with no type: %s", owner, key)
                resolved[key] = dict(entry)
            elif kind == PREREQUISITE:
                if key not in caller_context:
                    raise MissingPrerequisite(owner, key)
                resolved[key] = caller_context[key]
            elif kind == JSONRPC:
                resolved[key] = self._call(backend_url, entry, caller_context, owner)
            else:
                raise ContextResolutionError(f"{owner} has context {key} of unhandled type: {kind}")
        return resolved

    def _call(
        self,
        backend_url: str | None,
        entry: Mapping[str, JSONValue],
        caller_context: Mapping[str, JSONValue],
        owner: str,
    ) -> JSONValue:
        if not backend_url:
            raise ContextResolutionError(f"{owner} needs a backend URL to resolve JSON-RPC context")
        method = entry.get("method")
        if not isinstance(method, str):
            raise ContextResolutionError(f"{owner} has a JSON-RPC context without a method")
        params = substitute_params(entry.get("params", []), caller_context, owner)
        request = {"jsonrpc": "2.0", "method": method, "params": params, "id": next(self._ids)}
        body = self._transport(backend_url, json.dumps(request).encode("utf-8"))
        try:
            response = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ContextResolutionError(f"Invalid JSON-RPC response for {method}: {exc}") from exc
        if not isinstance(response, dict):
            raise ContextResolutionError(f"Invalid JSON-RPC response for {method}")
        if response.get("error") is not None:
            raise ContextResolutionError(f"JSON-RPC call {method} failed: {response['error']}")
        return response.get("result")


def substitute_params(
    params: JSONValue,
    caller_context: Mapping[str, JSONValue],
    owner: str = "component",
) -> JSONValue:
    """Return ``params`` with ``{{name}}`` placeholders replaced from ``caller_context``.

    Raises:
        UnknownContextVariable: If a placeholder names a key missing from ``caller_context``.
    """

    if isinstance(params, str):
        return _substitute(params, caller_context, owner)
    if isinstance(params, list):
        return [substitute_params(param, caller_context, owner) for param in params]
    if isinstance(params, Mapping):
        return {key: substitute_params(value, caller_context, owner) for key, value in params.items()}
    return params


def _substitute(text: str, caller_context: Mapping[str, JSONValue], owner: str) -> str:
    result = text
    for match in _PLACEHOLDER.finditer(text):
        variable = match.group(1)
        if variable not in caller_context:
            raise UnknownContextVariable(owner, variable)
        result = result.replace(match.group(0), _as_text(caller_context[variable]))
    return result


def _as_text(value: JSONValue) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


__all__ = [
    "ContextResolver",
    "JSONRPC",
    "JsonRpcContextResolver",
    "PREREQUISITE",
    "Transport",
    "substitute_params",
    "urllib_transport",
]

# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Template renderer contract, the Jinja renderer and template helpers."""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from collections.abc import Callable, Mapping
from functools import partial
from threading import Lock
from typing import Any, Final, Protocol, runtime_checkable

import jinja2

from ..errors import ComponentLoadError

DEFAULT_LANGUAGE: Final[str] = "sv"
DEFAULT_CURRENCY: Final[str] = "SEK"
_COMPILED_LIMIT: Final[int] = 256


@runtime_checkable
class TemplateRenderer(Protocol):
    """Render template source against a namespace."""

    def render(self, source: str, namespace: Mapping[str, Any]) -> str:
        """Return ``source`` rendered with ``namespace``.

        Raises:
            ComponentLoadError: If the template cannot be compiled or rendered.
        """


def currency(text: str) -> str:
    """Replace the ``currency`` placeholder with the shop currency."""

    return str(text).replace("currency", DEFAULT_CURRENCY)


def gettext(text: str) -> str:
    """Return ``text`` untranslated."""

    return str(text)


def lang(language: str | None, text: str) -> str:
    """Replace the ``lang`` placeholder with ``language``."""

    return str(text).replace("lang", language or DEFAULT_LANGUAGE)


def template_helpers(language: str | None) -> dict[str, Callable[[str], str]]:
    """Return the helper callables exposed to every template."""

    return {"currency": currency, "gettext": gettext, "lang": partial(lang, language)}


class JinjaTemplateRenderer:
    """TemplateRenderer backed by :mod:`jinja2`.

    Output is not auto-escaped: nested component HTML is inserted verbatim.
    Missing settings render as empty text, however deep the lookup; pass
    ``strict=True`` to make them an error instead.
    Compiled templates are reused by source digest.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._environment = jinja2.Environment(
            autoescape=False,
            undefined=jinja2.StrictUndefined if strict else jinja2.ChainableUndefined,
            keep_trailing_newline=True,
        )
        self._environment.filters.update({"currency": currency, "gettext": gettext})
        self._compiled: OrderedDict[str, jinja2.Template] = OrderedDict()
        self._lock = Lock()

    def render(self, source: str, namespace: Mapping[str, Any]) -> str:
        try:
            template = self._template(source)
            return template.render(dict(namespace))
        except jinja2.TemplateError as exc:
            raise ComponentLoadError(f"Template failed to render: {exc}") from exc

    def _template(self, source: str) -> jinja2.Template:
        key = hashlib.sha256(source.encode("utf-8"), usedforsecurity=False).hexdigest()
        with self._lock:
            cached = self._compiled.get(key)
            if cached is not None:
                self._compiled.move_to_end(key)
                return cached
        template = self._environment.from_string(source)
        with self._lock:
            self._compiled[key] = template
            while len(self._compiled) > _COMPILED_LIMIT:
                self._compiled.popitem(last=False)
        return template


__all__ = [
    "DEFAULT_LANGUAGE",
    "JinjaTemplateRenderer",
    "TemplateRenderer",
    "currency",
    "gettext",
    "lang",
    "template_helpers",
]

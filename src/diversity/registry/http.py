# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Minimal HTTP client used by the remote API registry."""

from __future__ import annotations

import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Final, Protocol, runtime_checkable

from ..errors import RegistryUnavailable

_USER_AGENT: Final[str] = "diversity-engine/1.0"


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """Status, body and headers of an HTTP response."""

    status: int
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Return the body decoded as UTF-8."""

        return self.body.decode("utf-8", errors="replace")


@runtime_checkable
class HttpClient(Protocol):
    """Issue ``GET`` requests and return the response, whatever its status."""

    def get(self, url: str) -> HttpResponse:
        """Fetch ``url``.

        Raises:
            RegistryUnavailable: If the server cannot be reached.
        """


class UrllibHttpClient:
    """HttpClient implemented with :mod:`urllib.request`."""

    def __init__(self, *, timeout: float = 10.0) -> None:
        self._timeout = timeout
        self._opener = urllib.request.build_opener(
            urllib.request.HTTPSHandler(context=ssl.create_default_context()),
        )

    def get(self, url: str) -> HttpResponse:
        request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        try:
            with self._opener.open(request, timeout=self._timeout) as response:
                return HttpResponse(response.status, response.read(), dict(response.headers.items()))
        except urllib.error.HTTPError as exc:
            return HttpResponse(exc.code, exc.read() or b"", dict(exc.headers.items()) if exc.headers else {})
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise RegistryUnavailable(f"Failed to reach {url}: {exc}") from exc


__all__ = ["HttpClient", "HttpResponse", "UrllibHttpClient"]

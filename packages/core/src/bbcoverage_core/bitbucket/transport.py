"""Authenticated HTTP transport for the Bitbucket API.

The client depends on the ``Transport`` interface only, so tests substitute a
fake that records requests and replays canned bodies. ``RequestsTransport``
is the production implementation.

Bitbucket never answers with a 401 challenge, so credentials must be sent on
the first request. ``requests`` attaches the basic-auth header up front when
``auth`` is set, which gives us preemptive authentication for free.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote

import requests
from requests.auth import HTTPBasicAuth

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60  # seconds, applied to both connect and read

_METHODS = frozenset({"GET", "POST", "DELETE"})


@dataclass(frozen=True)
class HttpRequest:
    method: str
    url: str
    body: str | None = None

    def __post_init__(self):
        if self.method not in _METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method!r}")


@dataclass(frozen=True)
class ProxyConfig:
    """Explicit proxy settings handed to the transport by the caller."""

    host: str
    port: int
    username: str | None = None
    password: str | None = None

    def url(self) -> str:
        # Proxy auth is only used when a username is given.
        if self.username and self.username.strip():
            creds = f"{quote(self.username, safe='')}:{quote(self.password or '', safe='')}@"
        else:
            creds = ""
        return f"http://{creds}{self.host}:{self.port}"


class Transport(ABC):
    """Executes one HTTP request and returns the raw response body.

    Implementations must never raise on network failure: they log and return
    None so that callers can degrade to "no data".
    """

    @abstractmethod
    def execute(self, request: HttpRequest) -> str | None:
        """Return the response body, "" for an empty success, or None on failure."""


TransportFactory = Callable[[str, str, "ProxyConfig | None"], Transport]


class RequestsTransport(Transport):
    def __init__(
        self,
        username: str,
        password: str,
        proxy: ProxyConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._auth = HTTPBasicAuth(username, password)
        self._proxy = proxy
        self._timeout = timeout

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        session.auth = self._auth
        if self._proxy is not None:
            logger.debug("Using proxy %s:%s", self._proxy.host, self._proxy.port)
            if self._proxy.username:
                logger.debug("Using proxy authentication (user=%s)", self._proxy.username)
            proxy_url = self._proxy.url()
            session.proxies = {"http": proxy_url, "https": proxy_url}
        return session

    def execute(self, request: HttpRequest) -> str | None:
        headers = {"Accept": "application/json"}
        data = None
        if request.body is not None:
            headers["Content-Type"] = "application/json; charset=utf-8"
            data = request.body.encode("utf-8")

        session = self._new_session()
        try:
            response = session.request(
                request.method,
                request.url,
                data=data,
                headers=headers,
                timeout=(self._timeout, self._timeout),
            )
            if response.status_code >= 400:
                logger.warning(
                    "%s %s returned HTTP %d: %s",
                    request.method,
                    request.url,
                    response.status_code,
                    response.text,
                )
                return None
            return response.text
        except requests.RequestException as e:
            logger.warning("Failed to send request %s %s: %s", request.method, request.url, e)
            return None
        finally:
            session.close()

"""
Network transport.

`Transport` is the pluggable seam between the execution core and the network. It
exposes a one-shot `send()` and a streaming `open_stream()`. `HTTPXTransport`
implements both on top of a synchronous `httpx.Client`; any `httpx.BaseTransport`
(e.g. `httpx.MockTransport` in tests) can be injected underneath it.

Transport calls block and run on the execution core's worker threads.
"""

from __future__ import annotations

import abc
import logging
import threading
from collections.abc import Callable, Iterator

import httpx

from .clients.pipeline import Header, RawResponse, RequestDescriptor
from .exceptions import TransportError

logger = logging.getLogger(__name__)


class StreamConnection(abc.ABC):
    """An open response whose body is read incrementally."""

    status_code: int
    headers: tuple[Header, ...]

    @abc.abstractmethod
    def iter_bytes(self) -> Iterator[bytes]:
        """Yield body chunks as they arrive. Raises TransportError on network failure."""

    @abc.abstractmethod
    def read(self) -> bytes:
        """Read the remaining body at once."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the connection. Idempotent and safe to call from any thread."""

    def header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


class Transport(abc.ABC):
    @abc.abstractmethod
    def send(
        self,
        request: RequestDescriptor,
        *,
        bind: Callable[[StreamConnection], None] | None = None,
    ) -> RawResponse:
        """
        Issue a one-shot request and return the fully-read response.

        `bind`, when given, receives the open connection before the body is read so
        a cancellation handle can close it mid-flight.
        """

    @abc.abstractmethod
    def open_stream(self, request: RequestDescriptor) -> StreamConnection:
        """Issue a request and return once headers are received."""

    def close(self) -> None:
        return None


def _wrap_httpx_error(exc: httpx.HTTPError) -> TransportError:
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(f"Request timed out: {exc}", cause=exc)
    if isinstance(exc, httpx.ConnectError):
        return TransportError(f"Connection failed: {exc}", cause=exc)
    return TransportError(f"Network error: {exc}", cause=exc)


class HTTPXStreamConnection(StreamConnection):
    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._lock = threading.Lock()
        self._closed = False
        self.status_code = response.status_code
        self.headers = tuple(response.headers.multi_items())

    @property
    def closed(self) -> bool:
        return self._closed

    def iter_bytes(self) -> Iterator[bytes]:
        try:
            for chunk in self._response.iter_bytes():
                if chunk:
                    yield chunk
        except httpx.StreamClosed:
            return
        except httpx.HTTPError as e:
            if self._closed:
                return
            raise _wrap_httpx_error(e) from e

    def read(self) -> bytes:
        return b"".join(self.iter_bytes())

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._response.close()


class HTTPXTransport(Transport):
    """
    Transport backed by `httpx.Client`.

    Args:
        client: Use an existing client (not closed by `close()`).
        transport: httpx transport to build an owned client with.
        timeout: Default timeout when a descriptor has none.
    """

    def __init__(
        self,
        *,
        client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 60.0,
    ) -> None:
        if client is not None and transport is not None:
            raise ValueError("Pass either 'client' or 'transport', not both")
        self._owns_client = client is None
        self._client = client or httpx.Client(transport=transport, timeout=timeout)
        self._timeout = timeout

    def _build(self, request: RequestDescriptor) -> httpx.Request:
        timeout = request.timeout if request.timeout is not None else self._timeout
        return self._client.build_request(
            request.method,
            request.url,
            headers=list(request.headers),
            content=request.content,
            timeout=timeout,
        )

    def send(
        self,
        request: RequestDescriptor,
        *,
        bind: Callable[[StreamConnection], None] | None = None,
    ) -> RawResponse:
        connection = self.open_stream(request)
        if bind is not None:
            bind(connection)
        try:
            content = connection.read()
        finally:
            connection.close()
        return RawResponse(
            status_code=connection.status_code,
            headers=connection.headers,
            content=content,
            request=request,
        )

    def open_stream(self, request: RequestDescriptor) -> HTTPXStreamConnection:
        logger.debug("%s %s", request.method, request.url)
        try:
            response = self._client.send(self._build(request), stream=True)
        except httpx.HTTPError as e:
            raise _wrap_httpx_error(e) from e
        return HTTPXStreamConnection(response)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

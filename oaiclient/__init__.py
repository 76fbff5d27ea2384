"""
OpenAI API client.

Example:
    ```python
    from oaiclient import OpenAI

    with OpenAI(api_key="sk-...") as client:
        client.models.list(lambda result: print(result.unwrap()))
    ```
"""

from __future__ import annotations

from .cancellation import CancellableRequest, NoOpCancellableRequest, RequestState
from .client import AsyncOpenAI, OpenAI, ReactiveOpenAI
from .clients.pipeline import BaseMiddleware, Middleware, RawResponse, RequestDescriptor
from .configuration import Configuration, ParsingOptions, StreamErrorPolicy
from .exceptions import (
    APIError,
    ClientClosedError,
    DecodeError,
    InvalidQueryError,
    MalformedFrameError,
    OpenAIClientError,
    RequestCancelledError,
    StreamFramingError,
    StreamTerminatedError,
    TransportError,
)
from .result import Failure, Result, Success
from .serializer import InlineExecutionSerializer, QueueExecutionSerializer

__version__ = "0.1.0"

__all__ = [
    "APIError",
    "AsyncOpenAI",
    "BaseMiddleware",
    "CancellableRequest",
    "ClientClosedError",
    "Configuration",
    "DecodeError",
    "Failure",
    "InlineExecutionSerializer",
    "InvalidQueryError",
    "MalformedFrameError",
    "Middleware",
    "NoOpCancellableRequest",
    "OpenAI",
    "OpenAIClientError",
    "ParsingOptions",
    "QueueExecutionSerializer",
    "RawResponse",
    "ReactiveOpenAI",
    "RequestCancelledError",
    "RequestDescriptor",
    "RequestState",
    "Result",
    "StreamErrorPolicy",
    "StreamFramingError",
    "StreamTerminatedError",
    "Success",
    "TransportError",
    "__version__",
]

"""Operation factory.

Turns a static ``OperationDescriptor`` into an awaitable operation that
validates its request, dispatches it through the transport, and classifies
every event the transport delivers back.
"""

from __future__ import annotations

import functools
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable

from distant.client.config import ApiSettings
from distant.client.operations.channel import (
    Callback,
    OperationResult,
    ResultChannel,
    invoke_callback,
)
from distant.client.operations.options import split_call_args
from distant.client.protocol.errors import (
    DistantError,
    ProtocolError,
    TransportError,
    ValidationError,
)
from distant.client.protocol.messages import Event, Message, normalize, to_messages
from distant.client.protocol.response import MapFn, expected_tags, parse_response
from distant.client.protocol.schema import MessageSchema
from distant.client.transport.base import StopHandle, Transport
from distant.client.transport.types import SendOptions

logger = logging.getLogger(__name__)


@dataclass
class Intercepted:
    """A classified event on its way to the caller."""

    error: DistantError | None
    data: Any
    stop: StopHandle | None
    messages: list[Message] = field(default_factory=list)
    """The batch that produced this event."""


class Interceptor(ABC):
    """
    Hook between response classification and the caller.

    The interceptor fully owns delivery: it decides whether, when and how
    many times ``forward`` is invoked for each event.
    """

    @abstractmethod
    def intercept(self, result: Intercepted, forward: Callback) -> None:
        """
        Handle one classified event.

        Args:
            result: The classified event.
            forward: The caller's callback (or blocking channel).
        """
        pass


@dataclass(frozen=True)
class OperationDescriptor:
    """Static description of one remote operation."""

    type: str
    """Request message tag."""

    result_types: tuple[str, ...]
    """Accepted result tags."""

    request_schema: MessageSchema | None = None
    response_schema: MessageSchema | None = None

    multi: bool = False
    """Whether one request yields a stream of events."""

    map: MapFn | None = None
    interceptor: Interceptor | None = None

    @classmethod
    def define(
        cls,
        type: str,
        result_types: str | Iterable[str],
        request: Mapping[str, Any] | None = None,
        response: Mapping[str, Any] | None = None,
        multi: bool = False,
        map: MapFn | None = None,
        interceptor: Interceptor | None = None,
    ) -> "OperationDescriptor":
        """
        Build a descriptor, compiling field declarations into schemas.

        Args:
            type: Request message tag.
            result_types: Accepted result tag or tags.
            request: Request field declarations, if validated.
            response: Response field declarations, if validated.
            multi: Whether to expect a stream of events.
            map: Transform of successful data ``(data, tag, stop)``.
            interceptor: Delivery hook between parsing and the caller.
        """
        return cls(
            type=type,
            result_types=expected_tags(result_types),
            request_schema=MessageSchema.build(request, type=type) if request is not None else None,
            response_schema=MessageSchema.build(response) if response is not None else None,
            multi=multi,
            map=map,
            interceptor=interceptor,
        )


class Operation:
    """
    Callable remote operation.

    ``await op(request, options=None, callback=None)``:

    - with a callback, the batch is dispatched and the callback receives
      ``(error, value, stop)`` for each delivered result; the call itself
      returns an empty ``OperationResult``.
    - without one, the call suspends until the first result (or the timeout)
      and returns it as ``OperationResult(error, value, stop)``.
    """

    def __init__(
        self,
        transport: Transport,
        descriptor: OperationDescriptor,
        settings: ApiSettings | None = None,
    ):
        """
        Initialize operation.

        Args:
            transport: Transport used to dispatch batches.
            descriptor: The operation's static description.
            settings: Defaults for timeout and poll interval, read per call.
        """
        self.transport = transport
        self.descriptor = descriptor
        self.settings = settings or ApiSettings()

    @property
    def name(self) -> str:
        """Request tag of this operation."""
        return self.descriptor.type

    async def __call__(
        self,
        request: Message | Mapping[str, Any] | list | tuple,
        options: Any = None,
        callback: Callback | None = None,
    ) -> OperationResult:
        options, callback = split_call_args(options, callback)
        options = options.resolve(self.settings)

        messages = to_messages(request, self.descriptor.type)
        error = self._validate_request(messages)
        if error is not None:
            logger.debug(f"Rejected {self.name} batch before dispatch: {error}")
            if callback is not None:
                invoke_callback(callback, error)
                return OperationResult()
            return OperationResult(error)

        channel = None
        if callback is None:
            channel = ResultChannel(options.timeout)
            callback = channel.resolve

        send_options = SendOptions(
            multi=options.multi if options.multi is not None else self.descriptor.multi,
            timeout=options.timeout,
            extra=options.extra,
        )
        on_event = functools.partial(self._on_event, messages=messages, reply=callback)

        logger.debug(f"Dispatching {len(messages)} {self.name} message(s) multi={send_options.multi}")
        try:
            await self.transport.send(messages, send_options, on_event)
        except Exception as e:
            logger.error(f"Transport failed to send {self.name}: {e}")
            invoke_callback(callback, TransportError.from_exception(e))

        if channel is not None:
            return await channel.wait()
        return OperationResult()

    def _validate_request(self, messages: list[Message]) -> ValidationError | None:
        schema = self.descriptor.request_schema
        if schema is None:
            return None
        for message in messages:
            try:
                schema.validate(message)
            except ValidationError as e:
                return e
        return None

    def _on_event(
        self,
        event: Event | Mapping[str, Any],
        stop: StopHandle | None,
        *,
        messages: list[Message],
        reply: Callback,
    ) -> None:
        try:
            if not isinstance(event, Event):
                event = Event.from_dict(event)
            self._deliver(event, stop, messages, reply)
        except DistantError as e:
            logger.debug(f"Rejected {event} for {self.name}: {e}")
            self._fail(e, stop, reply)
        except Exception as e:
            logger.exception(f"Failed to handle {event} for {self.name}")
            received = event.type if isinstance(event, Event) else str(event.get("type"))
            self._fail(ProtocolError.malformed(received, repr(e)), stop, reply)

    @staticmethod
    def _fail(error: DistantError, stop: StopHandle | None, reply: Callback) -> None:
        if stop is not None:
            stop()
        invoke_callback(reply, error, None, stop)

    def _deliver(
        self,
        event: Event,
        stop: StopHandle | None,
        messages: list[Message],
        reply: Callback,
    ) -> None:
        descriptor = self.descriptor

        def forward(error: DistantError | None, value: Any = None) -> None:
            if descriptor.interceptor is not None:
                descriptor.interceptor.intercept(
                    Intercepted(error=error, data=value, stop=stop, messages=messages),
                    reply,
                )
            else:
                invoke_callback(reply, error, value, stop)

        schema = descriptor.response_schema
        data = normalize(event.data)
        if schema is not None and event.type in descriptor.result_types and data is not None:
            items = data if isinstance(data, list) else [data]
            try:
                for item in items:
                    schema.validate_data(item)
            except ValidationError as e:
                logger.debug(f"Invalid {event.type} response for {self.name}: {e}")
                if stop is not None:
                    stop()
                return forward(e)

        parsed = parse_response(event, descriptor.result_types, descriptor.map, stop)
        forward(parsed.error, parsed.value)

    def __repr__(self) -> str:
        return f"Operation({self.name})"

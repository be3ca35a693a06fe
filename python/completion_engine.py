"""Inline completion orchestrator: debounce, cache, supersede, stream and clean."""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Callable, List, Optional

from completion_cache import CacheEntry, LRUCache
from context_analyzer import ContextAnalysis, analyze, cache_key
from copilot_config import CopilotConfig
from copilot_logging import get_logger
from editor_types import (
    CancellationToken,
    LoggingNotifier,
    Notifier,
    Position,
    Suggestion,
    TextDocument,
    TriggerContext,
)
from language_hints import describe_context, remove_object_declaration
from ollama_transport import ChatMessage, ChatRequest, ModelTransport, OllamaTransport
from prompt_generator import SYSTEM_PROMPT, build_from_analysis
from response_cleaner import clean, extract_code_block, get_unique_completion

logger = get_logger("engine")


class CompletionState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class InFlightRequest:
    """The one live completion request of an engine, with its abort handle."""

    def __init__(self, token: CancellationToken):
        self.token = token
        self.stream = None
        self._superseded = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._superseded.is_set() or self.token.is_cancellation_requested

    def abort(self) -> None:
        """Wake a pending debounce wait and ask an open stream to stop."""
        self._superseded.set()
        if self.stream is not None:
            self.stream.abort()

    async def wait_debounce(self, delay: float) -> bool:
        """Sleep out the debounce window; False when superseded or cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._superseded.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
        return not self.cancelled


class CompletionEngine:
    """Turns cursor positions into at most one live, cached, streamed completion request.

    Meant to be driven from a single event loop (the editor host's); the cache
    and the in-flight handle are not locked.
    """

    DEBOUNCE_DELAY = 0.2
    CACHE_SIZE = 100
    CACHE_TTL = 5 * 60

    def __init__(
        self,
        config: CopilotConfig,
        transport: Optional[ModelTransport] = None,
        notifier: Optional[Notifier] = None,
        cache: Optional[LRUCache[str, CacheEntry]] = None,
        clock: Callable[[], float] = time.monotonic,
        debounce_delay: Optional[float] = None,
        cache_ttl: Optional[float] = None,
    ):
        """Initialize engine with settings, Ollama transport and request timing controls."""
        self.config = config
        self.notifier = notifier or LoggingNotifier()
        self.cache: LRUCache[str, CacheEntry] = cache if cache is not None else LRUCache(self.CACHE_SIZE)
        self.debounce_delay = self.DEBOUNCE_DELAY if debounce_delay is None else debounce_delay
        self.cache_ttl = self.CACHE_TTL if cache_ttl is None else cache_ttl

        self._clock = clock
        self._transport = transport
        self._owns_transport = transport is None
        self._in_flight: Optional[InFlightRequest] = None
        self._state = CompletionState.IDLE
        self.last_outcome: Optional[CompletionState] = None

    @property
    def state(self) -> CompletionState:
        return self._state

    @property
    def transport(self) -> ModelTransport:
        if self._transport is None:
            self._transport = OllamaTransport(
                host=self.config.api_host,
                debug=self.config.debug,
                debug_log_file=self.config.debug_log_file,
            )
        return self._transport

    def clear_cache(self) -> None:
        self.cache.clear()
        self.notifier.show_information("Completion cache cleared")

    def update_model(self, model: Optional[str]) -> None:
        """Switch the default model; cached completions from the old model are dropped."""
        self.config.default_model = model
        self.cache.clear()
        logger.info("Default model set to %s", model)

    def set_api_host(self, host: str) -> None:
        self.config.api_host = host
        self.cache.clear()
        if self._owns_transport:
            self._transport = None
        logger.info("Ollama host set to %s", host)

    def dispose(self) -> None:
        if self._in_flight is not None:
            self._in_flight.abort()
            self._in_flight = None
        self._state = CompletionState.IDLE

    def build_request_payload(self, analysis: ContextAnalysis, document: TextDocument, model: str) -> ChatRequest:
        """Chat request for one analysed cursor position."""
        hints = describe_context(document, analysis.position, analysis.classification)
        prompt = build_from_analysis(analysis, document.language_id, hints)
        logger.debug("Prompt: %s", prompt)
        return ChatRequest(
            model=model,
            messages=[
                ChatMessage(role="system", content=SYSTEM_PROMPT),
                ChatMessage(role="user", content=prompt),
            ],
            stream=True,
            options=dict(self.config.options),
        )

    async def provide_inline_completion(
        self,
        document: TextDocument,
        position: Position,
        trigger_context: Optional[TriggerContext] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Optional[Suggestion]:
        """Suggestion for ``position``, or None. Never raises to the host."""
        request = self._start_request(cancel_token or CancellationToken())
        if trigger_context is not None:
            logger.debug("Completion triggered (%s) at %s", trigger_context.trigger_kind, position)

        try:
            return await self._complete(request, document, position)
        except Exception:
            self._set_state(request, CompletionState.FAILED)
            logger.exception("Error in provide_inline_completion")
            return None
        finally:
            request.stream = None
            if self._in_flight is request:
                self._in_flight = None
                self.last_outcome = self._state
                self._state = CompletionState.IDLE

    def _start_request(self, token: CancellationToken) -> InFlightRequest:
        # Only one request may be alive: always retire the previous one first.
        previous = self._in_flight
        if previous is not None:
            previous.abort()
        request = InFlightRequest(token)
        self._in_flight = request
        return request

    def _set_state(self, request: InFlightRequest, state: CompletionState) -> None:
        if self._in_flight is request:
            self._state = state

    async def _complete(
        self, request: InFlightRequest, document: TextDocument, position: Position
    ) -> Optional[Suggestion]:
        self._set_state(request, CompletionState.DEBOUNCING)
        if not await request.wait_debounce(self.debounce_delay):
            logger.debug("Request cancelled during debounce")
            self._set_state(request, CompletionState.CANCELLED)
            return None

        self._set_state(request, CompletionState.REQUESTING)
        analysis = analyze(document, position)
        key = cache_key(analysis)

        cached = self.cache.get(key)
        if cached is not None and self._clock() - cached.created_at < self.cache_ttl:
            logger.debug("Cache hit for %s", key)
            self._set_state(request, CompletionState.COMPLETED)
            return Suggestion.at(cached.completion_text, analysis.position)

        model = self.config.default_model
        if not model:
            self.notifier.show_warning("No Ollama model selected.")
            self._set_state(request, CompletionState.FAILED)
            return None

        completion = await self._generate_completion(request, self.build_request_payload(analysis, document, model))
        if completion is None:
            self._set_state(request, CompletionState.CANCELLED)
            return None

        cleaned = self._postprocess(completion, analysis)
        logger.debug("Cleaned response: %r", cleaned)
        self._set_state(request, CompletionState.COMPLETED)
        if not cleaned:
            logger.debug("No valid cleaned completion")
            return None

        self.cache.set(key, CacheEntry(completion_text=cleaned, created_at=self._clock()))
        return Suggestion.at(cleaned, analysis.position)

    def _postprocess(self, completion: str, analysis: ContextAnalysis) -> str:
        """Insertion text for a raw reply, without any echo of what the user already typed."""
        if analysis.classification.inside_object_literal:
            completion = remove_object_declaration(extract_code_block(completion), analysis.line_prefix)
        cleaned = clean(completion, analysis.line_prefix, analysis.indentation)

        # clean() re-indents every line, so look for the echo past the indentation.
        body = cleaned.lstrip()
        unique = get_unique_completion(body, analysis.line_prefix)
        return cleaned if unique == body else unique

    async def _generate_completion(self, request: InFlightRequest, chat_request: ChatRequest) -> Optional[str]:
        """Accumulate the streamed reply; None when the request was cancelled on the way."""
        stream = await self.transport.stream_chat(chat_request)
        request.stream = stream
        self._set_state(request, CompletionState.STREAMING)

        parts: List[str] = []
        try:
            async for delta in stream:
                if request.cancelled:
                    logger.debug("Request aborted during streaming")
                    stream.abort()
                    return None
                parts.append(delta.content_delta)
        finally:
            await stream.aclose()

        if request.cancelled or stream.aborted:
            logger.debug("Request cancelled!")
            return None
        return "".join(parts)

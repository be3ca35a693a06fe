"""Async Ollama client wrapper: model listing and abortable streaming chat."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Protocol

import ollama

from copilot_logging import get_logger

logger = get_logger("transport")

DEFAULT_API_HOST = "http://localhost:11434"
DEFAULT_DEBUG_LOG = "/tmp/ollama-copilot-debug.log"


class TransportError(RuntimeError):
    """Raised when the model server cannot be reached or answers with an error."""


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


@dataclass
class ChatRequest:
    model: str
    messages: List[ChatMessage]
    stream: bool = True
    options: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Keyword arguments for ``AsyncClient.chat``."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [asdict(message) for message in self.messages],
            "stream": self.stream,
        }
        if self.options:
            payload["options"] = self.options
        return payload


@dataclass(frozen=True)
class ChatDelta:
    content_delta: str


@dataclass(frozen=True)
class ModelInfo:
    label: str
    details: str = ""


def normalize_chunk(chunk: Any) -> Dict[str, Any]:
    """Convert Ollama SDK response objects into plain dicts for stable indexing."""
    if isinstance(chunk, dict):
        return chunk
    if hasattr(chunk, "model_dump"):
        return chunk.model_dump()
    if hasattr(chunk, "dict"):
        return chunk.dict()
    return {"message": {"content": str(chunk)}}


class ChatStream:
    """Async iterator of content deltas with a cooperative ``abort()``.

    ``abort`` only raises a flag; the next pull closes the underlying response
    generator from the consuming task and ends iteration.
    """

    def __init__(self, chunks: AsyncIterator[Any], on_chunk: Optional[Callable[[Dict[str, Any]], None]] = None):
        self._chunks = chunks
        self._on_chunk = on_chunk
        self._aborted = False
        self._closed = False

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self) -> None:
        self._aborted = True

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> ChatDelta:
        if self._aborted or self._closed:
            await self.aclose()
            raise StopAsyncIteration

        try:
            chunk = await self._chunks.__anext__()
        except StopAsyncIteration:
            self._closed = True
            raise
        except (ollama.ResponseError, ConnectionError) as exc:
            self._closed = True
            raise TransportError(f"chat stream failed: {exc}") from exc

        if self._aborted:
            await self.aclose()
            raise StopAsyncIteration

        normalized = normalize_chunk(chunk)
        if self._on_chunk is not None:
            self._on_chunk(normalized)
        message = normalized.get("message") or {}
        return ChatDelta(content_delta=message.get("content") or "")

    async def aclose(self) -> None:
        """Release the underlying HTTP response; safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self._chunks, "aclose", None)
        if close is not None:
            await close()


class ModelTransport(Protocol):
    async def list_models(self) -> List[ModelInfo]: ...

    async def stream_chat(self, request: ChatRequest) -> ChatStream: ...


class OllamaTransport:
    """Talks to an Ollama server through ``ollama.AsyncClient``."""

    def __init__(
        self,
        host: str = DEFAULT_API_HOST,
        debug: bool = False,
        debug_log_file: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self.host = host
        self.client = client or ollama.AsyncClient(host=host)

        # Debugging can be toggled with init option or env vars.
        self.debug = debug or os.getenv("OLLAMA_COPILOT_DEBUG", "") == "1"
        self.debug_log_file = debug_log_file or os.getenv("OLLAMA_COPILOT_DEBUG_LOG", DEFAULT_DEBUG_LOG)

    async def list_models(self) -> List[ModelInfo]:
        try:
            response = normalize_chunk(await self.client.list())
        except (ollama.ResponseError, ConnectionError) as exc:
            raise TransportError(f"could not list models at {self.host}: {exc}") from exc

        models = response.get("models")
        if not isinstance(models, list):
            raise TransportError("Response from Ollama API is not valid")

        infos: List[ModelInfo] = []
        for entry in models:
            entry = normalize_chunk(entry)
            label = entry.get("model") or entry.get("name")
            if not label:
                continue
            details = entry.get("details") or {}
            summary = f"{details.get('family') or ''} {details.get('parameter_size') or ''}".strip()
            infos.append(ModelInfo(label=label, details=summary))
        return infos

    async def stream_chat(self, request: ChatRequest) -> ChatStream:
        payload = request.to_payload()
        self._debug_log("payload", payload)
        try:
            chunks = await self.client.chat(**payload)
        except (ollama.ResponseError, ConnectionError) as exc:
            raise TransportError(f"chat request to {self.host} failed: {exc}") from exc

        on_chunk = (lambda chunk: self._debug_log("raw_chunk", chunk)) if self.debug else None
        return ChatStream(chunks, on_chunk=on_chunk)

    def _debug_log(self, event: str, payload: Any) -> None:
        """Append debug records to a local log file without disturbing stdio LSP traffic."""
        if not self.debug:
            return

        try:
            with open(self.debug_log_file, "a", encoding="utf-8") as handle:
                handle.write(json.dumps({"event": event, "payload": normalize_chunk(payload)}, default=str))
                handle.write("\n")
        except OSError:
            # Debug logging must never break completions.
            logger.debug("could not write debug log to %s", self.debug_log_file)

"""Tests for the Ollama transport adapter."""

from __future__ import annotations

import json
from pathlib import Path

import ollama
import pytest

from fakes import run
from ollama_transport import (
    ChatMessage,
    ChatRequest,
    ChatStream,
    OllamaTransport,
    TransportError,
    normalize_chunk,
)


class FakeModel:
    """Mimics a pydantic response object from the ollama SDK."""

    def __init__(self, payload):
        self._payload = payload

    def model_dump(self):
        return self._payload


class FakeAsyncClient:
    def __init__(self, chunks=None, listing=None, error=None):
        self.chunks = chunks or []
        self.listing = listing
        self.error = error
        self.calls = []
        self.closed = False

    async def list(self):
        if self.error is not None:
            raise self.error
        return self.listing

    async def chat(self, **payload):
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        return self._stream()

    async def _stream(self):
        try:
            for chunk in self.chunks:
                yield chunk
        finally:
            self.closed = True


async def _collect(stream: ChatStream):
    return [delta.content_delta async for delta in stream]


def _request() -> ChatRequest:
    return ChatRequest(
        model="qwen2.5-coder:3b",
        messages=[ChatMessage("system", "sys"), ChatMessage("user", "prompt")],
        options={"num_predict": 64},
    )


def test_request_payload_matches_chat_signature() -> None:
    assert _request().to_payload() == {
        "model": "qwen2.5-coder:3b",
        "messages": [{"role": "system", "content": "sys"}, {"role": "user", "content": "prompt"}],
        "stream": True,
        "options": {"num_predict": 64},
    }
    assert "options" not in ChatRequest(model="m", messages=[]).to_payload()


def test_normalize_chunk_handles_sdk_objects() -> None:
    assert normalize_chunk({"a": 1}) == {"a": 1}
    assert normalize_chunk(FakeModel({"b": 2})) == {"b": 2}
    assert normalize_chunk("raw") == {"message": {"content": "raw"}}


def test_stream_chat_yields_content_deltas() -> None:
    client = FakeAsyncClient(
        chunks=[
            FakeModel({"message": {"role": "assistant", "content": "return "}}),
            {"message": {"role": "assistant", "content": "x"}},
            {"message": {"role": "assistant", "content": ""}, "done": True},
        ]
    )
    transport = OllamaTransport(client=client)

    async def scenario():
        stream = await transport.stream_chat(_request())
        return await _collect(stream)

    assert run(scenario()) == ["return ", "x", ""]
    assert client.calls[0]["model"] == "qwen2.5-coder:3b"
    assert client.calls[0]["stream"] is True


def test_abort_ends_iteration_and_closes_response() -> None:
    client = FakeAsyncClient(chunks=[{"message": {"content": str(i)}} for i in range(5)])
    transport = OllamaTransport(client=client)

    async def scenario():
        stream = await transport.stream_chat(_request())
        received = []
        async for delta in stream:
            received.append(delta.content_delta)
            if len(received) == 2:
                stream.abort()
        return received, stream

    received, stream = run(scenario())
    assert received == ["0", "1"]
    assert stream.aborted
    assert client.closed


def test_chat_errors_become_transport_errors() -> None:
    transport = OllamaTransport(client=FakeAsyncClient(error=ollama.ResponseError("model not found", 404)))
    with pytest.raises(TransportError):
        run(transport.stream_chat(_request()))

    transport = OllamaTransport(client=FakeAsyncClient(error=ConnectionError("refused")))
    with pytest.raises(TransportError):
        run(transport.list_models())


def test_list_models_summarises_details() -> None:
    listing = FakeModel(
        {
            "models": [
                {"model": "llama3:8b", "details": {"family": "llama", "parameter_size": "8B"}},
                {"name": "legacy:latest", "details": None},
                {"details": {"family": "orphan"}},
            ]
        }
    )
    transport = OllamaTransport(client=FakeAsyncClient(listing=listing))
    models = run(transport.list_models())

    assert [(m.label, m.details) for m in models] == [("llama3:8b", "llama 8B"), ("legacy:latest", "")]


def test_list_models_rejects_malformed_response() -> None:
    transport = OllamaTransport(client=FakeAsyncClient(listing={"models": "nope"}))
    with pytest.raises(TransportError):
        run(transport.list_models())


def test_debug_log_records_payload_and_chunks(tmp_path: Path) -> None:
    log_file = tmp_path / "debug.log"
    client = FakeAsyncClient(chunks=[{"message": {"content": "ok"}}])
    transport = OllamaTransport(client=client, debug=True, debug_log_file=str(log_file))

    async def scenario():
        return await _collect(await transport.stream_chat(_request()))

    run(scenario())
    events = [json.loads(line)["event"] for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert events == ["payload", "raw_chunk"]


def test_debug_log_disabled_writes_nothing(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("OLLAMA_COPILOT_DEBUG", raising=False)
    log_file = tmp_path / "debug.log"
    transport = OllamaTransport(client=FakeAsyncClient(), debug_log_file=str(log_file))
    run(transport.stream_chat(_request()))
    assert not log_file.exists()

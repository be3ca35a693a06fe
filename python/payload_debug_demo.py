"""Print the prompt and chat payload the engine would send for a mock cursor position."""

from __future__ import annotations

import argparse
import json
from typing import Any, Dict, Optional, Sequence

from completion_engine import CompletionEngine
from context_analyzer import analyze
from copilot_config import CopilotConfig
from copilot_logging import configure_logging
from editor_types import InMemoryDocument, Position
from response_cleaner import clean

MOCK_SOURCE = "\n".join(
    [
        "import express from 'express';",
        "",
        "const app = express();",
        "",
        "function startServer(port, host) {",
        "  const settings = {",
        "    port: port,",
        "    ",
        "  };",
        "}",
    ]
)


def build_demo_payload(model: str = "qwen2.5-coder:3b") -> Dict[str, Any]:
    """Chat payload for a cursor inside an object literal of the mock source."""
    document = InMemoryDocument(MOCK_SOURCE, language_id="javascript", file_name="server.js")
    position = Position(line=7, character=4)

    engine = CompletionEngine(
        CopilotConfig(default_model=model, options={"temperature": 0.1, "top_p": 0.9, "num_predict": 128}),
    )
    analysis = analyze(document, position)
    return engine.build_request_payload(analysis, document, model).to_payload()


def print_demo_payload() -> None:
    """Build and print a representative payload and the expected cleaned completion."""
    payload = build_demo_payload()
    print("=== Payload ===")
    print(json.dumps(payload, indent=2))

    print("\n=== Prompt ===")
    print(payload["messages"][-1]["content"])

    raw = "```js\nhost: host,\n```"
    print("\n=== Raw model reply ===")
    print(raw)
    print("\n=== Cleaned insertion ===")
    print(clean(raw, line_prefix="    "))


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Print the completion prompt for a mock document.")
    parser.add_argument("-v", "--verbose", action="store_true", help="log prompt construction to stderr")
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose)
    print_demo_payload()


if __name__ == "__main__":
    main()

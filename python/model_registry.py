"""Model discovery and selection against the configured Ollama server."""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Sequence

from copilot_config import CopilotConfig
from copilot_logging import get_logger
from editor_types import LoggingNotifier, Notifier
from ollama_transport import ModelInfo, ModelTransport

logger = get_logger("models")

MAX_RETRIES = 5
RETRY_DELAY = 1.0

ModelChooser = Callable[[Sequence[ModelInfo]], Optional[ModelInfo]]


async def get_available_models(
    transport: ModelTransport,
    max_retries: int = MAX_RETRIES,
    retry_delay: float = RETRY_DELAY,
    notifier: Optional[Notifier] = None,
) -> List[ModelInfo]:
    """List installed models, retrying while the server comes up; ``[]`` if it never does."""
    notifier = notifier or LoggingNotifier()
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_retries + 1):
        try:
            return await transport.list_models()
        except Exception as exc:
            last_error = exc
            logger.error("Error fetching Ollama models. [Attempt: %d] %s", attempt, exc)
            if attempt < max_retries:
                await asyncio.sleep(retry_delay)

    notifier.show_error(f"Failed to fetch Ollama models: {last_error}")
    return []


async def get_selected_model(
    config: CopilotConfig,
    transport: ModelTransport,
    chooser: Optional[ModelChooser] = None,
    notifier: Optional[Notifier] = None,
    retry_delay: float = RETRY_DELAY,
) -> Optional[str]:
    """Configured default model, or one picked by ``chooser`` from the server's list."""
    if config.default_model:
        return config.default_model

    notifier = notifier or LoggingNotifier()
    models = await get_available_models(transport, retry_delay=retry_delay, notifier=notifier)
    if not models:
        notifier.show_warning("No models found")
        return None

    choice = chooser(models) if chooser is not None else None
    if choice is None:
        return None

    config.default_model = choice.label
    notifier.show_information(f"Selected model: {choice.label}")
    return choice.label


async def initialize_client(transport: ModelTransport, notifier: Optional[Notifier] = None) -> bool:
    """Probe the server once; tells the user how to fix it when unreachable."""
    notifier = notifier or LoggingNotifier()
    try:
        await transport.list_models()
    except Exception as exc:
        logger.error("Failed to connect to Ollama: %s", exc)
        notifier.show_error(
            f"Could not connect to Ollama: {exc}. Make sure the Ollama server is running and accessible."
        )
        return False

    logger.info("Successfully connected to Ollama")
    return True

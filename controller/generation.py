from __future__ import annotations

import asyncio
from typing import Any
from typing import Protocol
from typing import Sequence

from config.defaults import DEFAULT_CLAUDE_MAX_TOKENS
from config.defaults import DEFAULT_MAX_TOKENS
from config.defaults import DEFAULT_TEMPERATURE
from conversation.store import ROLE_ASSISTANT
from conversation.store import ROLE_SYSTEM
from conversation.store import ROLE_USER
from conversation.store import ConversationTurn


class GenerationError(RuntimeError):
    pass


class TextGenerator(Protocol):
    backend_name: str

    async def generate(
        self,
        history: Sequence[ConversationTurn],
        user_text: str,
        *,
        image_urls: Sequence[str] = (),
    ) -> str: ...


def build_openai_messages(
    history: Sequence[ConversationTurn],
    user_text: str,
    image_urls: Sequence[str] = (),
) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = [turn.as_message() for turn in history]
    urls = [u for u in image_urls if u]
    if urls:
        content: list[dict[str, Any]] = [{"type": "text", "text": user_text}]
        for url in urls:
            content.append({"type": "image_url", "image_url": {"url": url}})
        messages.append({"role": ROLE_USER, "content": content})
    else:
        messages.append({"role": ROLE_USER, "content": user_text})
    return messages


def build_claude_request(
    history: Sequence[ConversationTurn],
    user_text: str,
    image_urls: Sequence[str] = (),
) -> tuple[str, list[dict[str, Any]]]:
    system_parts = [turn.content for turn in history if turn.role == ROLE_SYSTEM and turn.content]
    messages: list[dict[str, Any]] = []
    for turn in history:
        if turn.role == ROLE_SYSTEM:
            continue
        # the Messages API wants the exchange to open with a user turn
        if not messages and turn.role == ROLE_ASSISTANT:
            continue
        messages.append({"role": turn.role, "content": turn.content})

    urls = [u for u in image_urls if u]
    if urls:
        content: list[dict[str, Any]] = [{"type": "text", "text": user_text}]
        for url in urls:
            content.append({"type": "image", "source": {"type": "url", "url": url}})
        messages.append({"role": ROLE_USER, "content": content})
    else:
        messages.append({"role": ROLE_USER, "content": user_text})
    return ("\n\n".join(system_parts), messages)


class OpenAIGenerator:
    backend_name = "openai"

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        vision_model: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self.client = client
        self.model = model
        self.vision_model = vision_model or model
        self.max_tokens = max(1, int(max_tokens))
        self.temperature = float(temperature)

    async def generate(
        self,
        history: Sequence[ConversationTurn],
        user_text: str,
        *,
        image_urls: Sequence[str] = (),
    ) -> str:
        messages = build_openai_messages(history, user_text, image_urls)
        model = self.vision_model if any(image_urls) else self.model
        try:
            resp = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as e:
            raise GenerationError(f"OpenAI request failed: {e}") from e

        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise GenerationError("OpenAI returned a malformed response") from e
        text = (content or "").strip()
        if not text:
            raise GenerationError("OpenAI returned empty output")
        return text


class ClaudeGenerator:
    backend_name = "claude"

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        max_tokens: int = DEFAULT_CLAUDE_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max(1, int(max_tokens))
        self.temperature = float(temperature)

    async def generate(
        self,
        history: Sequence[ConversationTurn],
        user_text: str,
        *,
        image_urls: Sequence[str] = (),
    ) -> str:
        system, messages = build_claude_request(history, user_text, image_urls)
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        try:
            resp = await asyncio.to_thread(self.client.messages.create, **kwargs)
        except Exception as e:
            raise GenerationError(f"Claude request failed: {e}") from e

        blocks = getattr(resp, "content", None) or []
        text = "".join(
            str(getattr(block, "text", "") or "")
            for block in blocks
            if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise GenerationError("Claude returned empty output")
        return text


def build_generator(
    backend: str,
    *,
    client: Any,
    model: str,
    vision_model: str | None = None,
    max_tokens: int | None = None,
    temperature: float = DEFAULT_TEMPERATURE,
) -> TextGenerator:
    name = (backend or "").strip().lower()
    if name == "openai":
        return OpenAIGenerator(
            client=client,
            model=model,
            vision_model=vision_model or model,
            max_tokens=DEFAULT_MAX_TOKENS if max_tokens is None else max_tokens,
            temperature=temperature,
        )
    if name in {"claude", "anthropic"}:
        return ClaudeGenerator(
            client=client,
            model=model,
            max_tokens=DEFAULT_CLAUDE_MAX_TOKENS if max_tokens is None else max_tokens,
            temperature=temperature,
        )
    raise ValueError(f"unknown AI backend: {backend!r}")

from __future__ import annotations

from typing import Hashable
from typing import Sequence

from controller.generation import TextGenerator
from conversation.store import ROLE_ASSISTANT
from conversation.store import ROLE_SYSTEM
from conversation.store import ROLE_USER
from conversation.store import ConversationStore
from conversation.store import ConversationTurn


def format_user_turn(speaker: str | None, prompt: str) -> str:
    if speaker:
        return f"{speaker}: {prompt}"
    return prompt


async def respond(
    store: ConversationStore,
    generator: TextGenerator,
    *,
    channel_id: Hashable,
    speaker: str | None,
    prompt: str,
    preamble: str,
    image_urls: Sequence[str] = (),
    history_enabled: bool = True,
) -> str:
    """Run one user turn through the generator and record both sides.

    The user turn is stored before the model is called, so concurrent turns in
    one channel keep their arrival order. GenerationError propagates to the
    caller; the user turn stays in history in that case.
    """
    user_text = format_user_turn(speaker, prompt)
    if not history_enabled:
        one_shot = [ConversationTurn(ROLE_SYSTEM, preamble)]
        return await generator.generate(one_shot, user_text, image_urls=image_urls)

    history = store.read(channel_id)
    if not history:
        store.initialize(channel_id, preamble)
        history = store.read(channel_id)

    store.append(channel_id, ROLE_USER, prompt, speaker_label=speaker)
    reply = await generator.generate(history, user_text, image_urls=image_urls)
    store.append(channel_id, ROLE_ASSISTANT, reply)
    return reply


def reset_conversation(store: ConversationStore, channel_id: Hashable, preamble: str) -> None:
    store.initialize(channel_id, preamble)

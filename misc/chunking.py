from __future__ import annotations

from dataclasses import dataclass

from config.defaults import CHUNK_MAX_LENGTH
from config.defaults import DISCORD_MAX_MESSAGE_LEN

PARAGRAPH_BREAK = "\n\n"
SENTENCE_BREAK = ". "
WORD_BREAK = " "

PARAGRAPH_MIN_RATIO = 0.75
SENTENCE_MIN_RATIO = 0.75
WORD_MIN_RATIO = 0.5


class InvalidArgument(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class MessageFragment:
    index: int
    total: int
    text: str
    # break characters dropped between this fragment and the next one
    consumed: str = ""

    @property
    def label(self) -> str:
        if self.total <= 1:
            return ""
        return f"[Part {self.index}/{self.total}] "

    def render(self) -> str:
        return f"{self.label}{self.text}"


def _find_break(remaining: str, max_length: int) -> tuple[int, int]:
    # (end of fragment, start of remainder); the gap is what gets consumed
    para_at = remaining.rfind(PARAGRAPH_BREAK, 0, max_length + len(PARAGRAPH_BREAK))
    if para_at >= 0 and para_at >= max_length * PARAGRAPH_MIN_RATIO:
        return (para_at, para_at + len(PARAGRAPH_BREAK))

    # the period stays with the fragment, so it must fit inside max_length
    sentence_at = remaining.rfind(SENTENCE_BREAK, 0, max_length + 1)
    if sentence_at >= 0 and sentence_at >= max_length * SENTENCE_MIN_RATIO:
        return (sentence_at + 1, sentence_at + len(SENTENCE_BREAK))

    word_at = remaining.rfind(WORD_BREAK, 0, max_length + 1)
    if word_at >= 0 and word_at >= max_length * WORD_MIN_RATIO:
        return (word_at, word_at + len(WORD_BREAK))

    return (max_length, max_length)


def split_fragments(text: str | None, max_length: int = CHUNK_MAX_LENGTH) -> list[MessageFragment]:
    if int(max_length) <= 0:
        raise InvalidArgument(f"max_length must be positive, got {max_length!r}")
    max_length = int(max_length)
    text = text or ""
    if len(text) <= max_length:
        return [MessageFragment(index=1, total=1, text=text)]

    pieces: list[tuple[str, str]] = []
    remaining = text
    while remaining:
        if len(remaining) <= max_length:
            pieces.append((remaining, ""))
            break
        cut, resume = _find_break(remaining, max_length)
        pieces.append((remaining[:cut], remaining[cut:resume]))
        remaining = remaining[resume:]

    total = len(pieces)
    return [
        MessageFragment(index=i, total=total, text=piece, consumed=consumed)
        for i, (piece, consumed) in enumerate(pieces, start=1)
    ]


def chunk_message(text: str | None, max_length: int = CHUNK_MAX_LENGTH) -> list[str]:
    return [fragment.render() for fragment in split_fragments(text, max_length)]


def truncate_message(text: str | None, max_length: int = DISCORD_MAX_MESSAGE_LEN) -> str:
    if int(max_length) <= 0:
        raise InvalidArgument(f"max_length must be positive, got {max_length!r}")
    text = text or ""
    if len(text) <= max_length:
        return text
    if max_length <= 3:
        return text[:max_length]
    return text[: max_length - 3] + "..."

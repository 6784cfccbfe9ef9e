from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from config.defaults import BOT_NAME


@dataclass(slots=True)
class Persona:
    bot_name: str = BOT_NAME
    organization: str = "F9 Global"
    primary_role: str = ""
    tone_rules: list[str] = field(default_factory=list)
    technical_capabilities: list[str] = field(default_factory=list)
    communication_guidelines: list[str] = field(default_factory=list)
    conversation_approach: list[str] = field(default_factory=list)

    def render_preamble(self, bot_name: str | None = None) -> str:
        name = (bot_name or "").strip() or self.bot_name
        lines: list[str] = [f"You are {name}, an AI assistant for developers at {self.organization}."]
        if self.primary_role:
            lines.append("")
            lines.append(f"PRIMARY ROLE: {self.primary_role}")
        for heading, items in (
            ("TONE ADAPTABILITY", self.tone_rules),
            ("TECHNICAL CAPABILITIES", self.technical_capabilities),
            ("COMMUNICATION GUIDELINES", self.communication_guidelines),
            ("CONVERSATION APPROACH", self.conversation_approach),
        ):
            if not items:
                continue
            lines.append("")
            lines.append(f"{heading}:")
            for item in items:
                lines.append(f"- {item}")
        return "\n".join(lines)


def default_persona() -> Persona:
    return Persona(
        bot_name=BOT_NAME,
        organization="F9 Global",
        primary_role="Help developers with coding questions, debugging, and technical explanations.",
        tone_rules=[
            "Default to a professional, helpful tone for technical discussions",
            "If the conversation becomes casual or playful, match that tone appropriately",
            "Be willing to be humorous or goofy if the user initiates that style of interaction",
        ],
        technical_capabilities=[
            "Provide code examples, explanations, and debugging help",
            "Analyze code for potential issues and suggest improvements",
            "Explain technical concepts clearly with appropriate examples",
        ],
        communication_guidelines=[
            "Respond in English, but understand questions in other languages",
            "Use Markdown for code formatting and structured responses",
            "Keep responses under 2000 characters to fit Discord message limitations",
            "For image analysis, identify code, diagrams, or technical content",
        ],
        conversation_approach=[
            "Maintain context from previous messages",
            "Ask clarifying questions when needed",
            "Admit when you don't know something rather than guessing",
        ],
    )


def _as_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    out: list[str] = []
    for item in value:
        text = str(item or "").strip()
        if text:
            out.append(text)
    return out


def load_persona(path: str | Path | None) -> tuple[Persona, str | None]:
    """
    Returns (persona, warning_message). warning_message is None on clean load.
    """
    defaults = default_persona()
    if not path:
        return (defaults, "Persona path missing; using built-in persona.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Persona file not found at {p}; using built-in persona.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read persona from {p}: {exc}; using built-in persona.")

    if not isinstance(payload, dict):
        return (defaults, f"Invalid persona format in {p}; using built-in persona.")

    persona = Persona(
        bot_name=str(payload.get("bot_name") or defaults.bot_name).strip(),
        organization=str(payload.get("organization") or defaults.organization).strip(),
        primary_role=str(payload.get("primary_role") or defaults.primary_role).strip(),
        tone_rules=_as_list(payload.get("tone_rules")) or defaults.tone_rules,
        technical_capabilities=_as_list(payload.get("technical_capabilities")) or defaults.technical_capabilities,
        communication_guidelines=_as_list(payload.get("communication_guidelines")) or defaults.communication_guidelines,
        conversation_approach=_as_list(payload.get("conversation_approach")) or defaults.conversation_approach,
    )
    return (persona, None)

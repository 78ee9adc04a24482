from __future__ import annotations

from typing import Literal

from app.chat.validation import ChatMessage

ChatAction = Literal["chat", "generateNote"]

DEFAULT_GREETING = "Hello, how can you help me today?"
DEFAULT_NOTE_REQUEST = "Generate a comprehensive clinical note for today's orthodontic visit."

_SAFETY_RULES = (
    "You must follow these rules:",
    "- Do NOT invent facts, diagnoses, measurements, or appointment details.",
    "- If information is missing, say so instead of guessing.",
    "- Text such as [REDACTED-SSN], [REDACTED-ID] or [REDACTED-EMAIL] marks removed "
    "identifiers; never try to reconstruct them.",
)


def build_system_message(
    *,
    action: ChatAction,
    chat_prompt: str,
    note_prompt: str,
    patient_context: str | None = None,
) -> ChatMessage:
    """
    Create the fixed leading system message.

    The base prompt comes from configuration; the safety rules are always appended so a
    misconfigured prompt cannot drop them.
    """

    lines = [note_prompt if action == "generateNote" else chat_prompt, "", *_SAFETY_RULES]
    if patient_context and patient_context.strip():
        lines.extend(["", "Patient info:", patient_context.strip()])
    return ChatMessage(role="system", content="\n".join(lines))


def default_user_message(*, action: ChatAction) -> str:
    return DEFAULT_NOTE_REQUEST if action == "generateNote" else DEFAULT_GREETING

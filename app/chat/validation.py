from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, cast

from app.domain.exceptions import ValidationError

MessageRole = Literal["system", "user", "assistant"]

ALLOWED_ROLES: frozenset[str] = frozenset({"system", "user", "assistant"})


@dataclass(frozen=True)
class ChatMessage:
    role: MessageRole
    content: str

    def as_payload(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class RedactionRule:
    name: str
    pattern: re.Pattern[str]
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


# IMPORTANT: these patterns are a best-effort heuristic, NOT PHI detection and NOT a
# compliance control. Names, addresses, dates of birth, free-form identifiers etc. pass
# through untouched. Changing a pattern is a policy decision; get sign-off first.
#
# Order matters: the SSN shape is replaced before the generic digit run.
DEFAULT_REDACTION_RULES: tuple[RedactionRule, ...] = (
    RedactionRule("ssn", re.compile(r"\d{3}-\d{2}-\d{4}"), "[REDACTED-SSN]"),
    RedactionRule("numeric_id", re.compile(r"\d{10,16}"), "[REDACTED-ID]"),
    RedactionRule(
        "email",
        re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
        "[REDACTED-EMAIL]",
    ),
)


def redact(text: str, rules: Sequence[RedactionRule] = DEFAULT_REDACTION_RULES) -> str:
    """Apply every rule, in order, to all occurrences in `text`.

    Replacement tokens contain no digits or `@`, so redacting twice is a no-op.
    """

    for rule in rules:
        text = rule.apply(text)
    return text


class RequestValidator:
    """
    Validate and sanitize a caller-supplied conversation before it is forwarded.

    Pure and deterministic: no I/O, no logging, the input is never mutated.
    """

    def __init__(
        self,
        *,
        max_messages: int = 10,
        max_message_length: int = 4000,
        rules: Sequence[RedactionRule] = DEFAULT_REDACTION_RULES,
    ):
        self._max_messages = max_messages
        self._max_message_length = max_message_length
        self._rules = tuple(rules)

    def validate(self, raw_messages: Any) -> list[ChatMessage]:
        if raw_messages is None:
            raise ValidationError("messages is required")
        # Strings and objects are technically iterable but never a message list.
        if isinstance(raw_messages, (str, bytes, Mapping)) or not isinstance(
            raw_messages, Sequence
        ):
            raise ValidationError("messages must be an array")
        if len(raw_messages) == 0:
            raise ValidationError("messages must not be empty")
        if len(raw_messages) > self._max_messages:
            raise ValidationError(f"messages must contain at most {self._max_messages} items")

        return [self._validate_message(idx, raw) for idx, raw in enumerate(raw_messages)]

    def _validate_message(self, idx: int, raw: Any) -> ChatMessage:
        if not isinstance(raw, Mapping) or "role" not in raw or "content" not in raw:
            raise ValidationError(f"messages[{idx}] must have role and content")

        role = raw["role"]
        if not isinstance(role, str) or role not in ALLOWED_ROLES:
            raise ValidationError(
                f"messages[{idx}].role must be one of: system, user, assistant"
            )

        content = raw["content"]
        if not isinstance(content, str):
            raise ValidationError(f"messages[{idx}].content must be a string")
        if len(content) > self._max_message_length:
            raise ValidationError(
                f"messages[{idx}].content exceeds {self._max_message_length} characters"
            )

        sanitized = redact(content, self._rules).strip()
        if not sanitized:
            raise ValidationError(f"messages[{idx}].content must not be blank")

        # Cast is safe due to the allowlist check above.
        return ChatMessage(role=cast(MessageRole, role), content=sanitized)

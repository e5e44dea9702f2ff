"""Text markers that change how a plain user message is classified.

Agents write some bookkeeping into the transcript as if the user had typed
it: interruption notices, slash commands and their captured output, injected
environment context. Each rule maps a regex to the role such text should get.
Rules are tried in order; the first match wins.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from .models import ContentBlock, Role, TextBlock, flatten_text


class TextRule(NamedTuple):
    name: str
    role: Role
    pattern: re.Pattern[str]


USER_TEXT_RULES: tuple[TextRule, ...] = (
    TextRule("interrupted", Role.INTERRUPTION, re.compile(r"\[?Request interrupted by user[^\]\n]*\]?")),
    TextRule("compact", Role.COMMAND, re.compile(r"<command-name>\s*/compact\s*</command-name>|\A/compact\b")),
    TextRule("command-tag", Role.COMMAND, re.compile(r"<command-name>")),
    TextRule("command-output", Role.COMMAND, re.compile(r"\A<local-command-(?:stdout|stderr)>")),
    TextRule("slash-command", Role.COMMAND, re.compile(r"\A/[A-Za-z][\w:-]*(?:\s|\Z)")),
    TextRule("environment-context", Role.META, re.compile(r"\A<(?:environment_context|user_instructions)>")),
    TextRule("local-command-caveat", Role.META, re.compile(r"\ACaveat: The messages below were generated by the user")),
)


def match_user_text(text: str, rules: tuple[TextRule, ...] = USER_TEXT_RULES) -> TextRule | None:
    """Return the first rule matching ``text``, if any."""
    stripped = text.strip()
    if not stripped:
        return None
    for rule in rules:
        if rule.pattern.search(stripped):
            return rule
    return None


def refine_role(role: Role, blocks: list[ContentBlock]) -> tuple[Role, str | None]:
    """Reclassify a text-only user message using ``USER_TEXT_RULES``.

    Returns the (possibly unchanged) role and the name of the matching rule.
    """
    if role is not Role.USER or not blocks:
        return role, None
    if not all(isinstance(block, TextBlock) for block in blocks):
        return role, None
    rule = match_user_text(flatten_text(blocks))
    if rule is None:
        return role, None
    return rule.role, rule.name

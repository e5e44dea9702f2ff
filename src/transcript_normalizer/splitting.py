"""Split records that hold several semantic acts into separate messages."""

from __future__ import annotations

from .decoders import ProvisionalMessage
from .models import TOOL_BLOCKS, TOOL_ROLES, ParsedMessage, Role, ToolInvocationBlock


def derived_id(original_id: str, block_index: int) -> str:
    return f"{original_id}-{block_index}"


def split_message(provisional: ProvisionalMessage) -> list[ParsedMessage]:
    """Emit one message per tool block, plus one for the remaining content.

    The prose message keeps the record's id and role; each tool block becomes
    a ``tool_invocation`` or ``tool_outcome`` message with the derived id
    ``{id}-{block_index}``. Every message shares the record's timestamp and
    parent id. The record metadata goes on the first message emitted.
    """
    blocks = provisional.blocks
    tool_indexes = [i for i, block in enumerate(blocks) if isinstance(block, TOOL_BLOCKS)]

    if not tool_indexes:
        role = Role.META if provisional.role in TOOL_ROLES else provisional.role
        return [_message(provisional, provisional.id, role, blocks, provisional.metadata)]

    if len(blocks) == 1:
        return [_message(provisional, provisional.id, _tool_role(blocks[0]), blocks, provisional.metadata)]

    messages: list[ParsedMessage] = []
    rest = [block for block in blocks if not isinstance(block, TOOL_BLOCKS)]
    if rest:
        role = provisional.role
        if role in TOOL_ROLES:
            role = Role.ASSISTANT if role is Role.TOOL_INVOCATION else Role.USER
        messages.append(_message(provisional, provisional.id, role, rest, provisional.metadata))

    for index in tool_indexes:
        metadata = {"split_from": provisional.id, "block_index": index}
        if not messages:
            metadata = {**provisional.metadata, **metadata}
        block = blocks[index]
        messages.append(_message(provisional, derived_id(provisional.id, index), _tool_role(block), [block], metadata))
    return messages


def _tool_role(block) -> Role:
    return Role.TOOL_INVOCATION if isinstance(block, ToolInvocationBlock) else Role.TOOL_OUTCOME


def _message(provisional: ProvisionalMessage, message_id: str, role: Role, blocks, metadata) -> ParsedMessage:
    return ParsedMessage(
        id=message_id,
        timestamp=provisional.timestamp,
        role=role,
        content=tuple(blocks),
        metadata=metadata,
        parent_id=provisional.parent_id,
    )

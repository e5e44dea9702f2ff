"""Pair tool invocations with their outcomes across providers."""

from __future__ import annotations

import dataclasses
import logging
from collections import Counter, deque

from .models import ContentBlock, ToolInvocationBlock, ToolOutcomeBlock

_LOGGER = logging.getLogger(__name__)


def synthesize_join_key(parent_id: str, tool_name: str, occurrence: int) -> str:
    """Build a join key for an invocation that has no native call id."""
    return f"{parent_id}:{tool_name}:{occurrence}"


class ToolLinker:
    """Assigns join keys to tool blocks for one parse call.

    Every invocation gets a key no other invocation of the parse shares: a
    repeated native id (replayed records of a resumed session) is suffixed
    ``~1``, ``~2``. Outcomes that reference a repeated id pair with the
    oldest unanswered invocation carrying it.

    A linker keeps state (the invocations seen so far), so each parse must
    use its own instance.
    """

    def __init__(self) -> None:
        self._known: dict[str, str] = {}  # join key -> tool name
        self._pending: dict[str, str] = {}  # unanswered join key -> tool name
        self._by_name: dict[str, list[str]] = {}  # tool name -> join keys, oldest first
        self._by_ref: dict[str, deque[str]] = {}  # native or synthesized key -> join keys issued for it
        self._repeats: Counter[str] = Counter()
        self.orphaned = 0

    def link_blocks(
        self,
        blocks: list[ContentBlock],
        parent_id: str,
        linked_to: str | None = None,
    ) -> list[ContentBlock]:
        """Resolve every tool block of one record, preserving order."""
        occurrences: Counter[str] = Counter()
        linked: list[ContentBlock] = []
        for block in blocks:
            if isinstance(block, ToolInvocationBlock):
                linked.append(self.link_invocation(block, parent_id, occurrences[block.name]))
                occurrences[block.name] += 1
            elif isinstance(block, ToolOutcomeBlock):
                linked.append(self.link_outcome(block, linked_to))
            else:
                linked.append(block)
        return linked

    def link_invocation(self, block: ToolInvocationBlock, parent_id: str, occurrence: int) -> ToolInvocationBlock:
        base = block.call_id or synthesize_join_key(parent_id, block.name, occurrence)
        key = self._unique(base)
        if key != base:
            _LOGGER.debug("Tool call id %r repeats; linking this invocation as %r", base, key)
        self._known[key] = block.name
        self._pending[key] = block.name
        self._by_name.setdefault(block.name, []).append(key)
        self._by_ref.setdefault(base, deque()).append(key)
        return dataclasses.replace(block, join_key=key)

    def link_outcome(self, block: ToolOutcomeBlock, linked_to: str | None = None) -> ToolOutcomeBlock:
        reference = block.reference or linked_to
        if reference is not None:
            key = self._oldest_pending(reference)
        elif block.tool_name:
            key = self._latest_pending(block.tool_name)
        else:
            key = None

        if key is None or key not in self._known:
            self.orphaned += 1
            _LOGGER.debug("Tool outcome %r has no matching invocation", key)
            return dataclasses.replace(block, join_key=key, orphaned=True)

        self._pending.pop(key, None)
        tool_name = block.tool_name or self._known[key]
        return dataclasses.replace(block, join_key=key, tool_name=tool_name, orphaned=False)

    def _unique(self, base: str) -> str:
        key = base
        while key in self._known:
            self._repeats[base] += 1
            key = f"{base}~{self._repeats[base]}"
        return key

    def _oldest_pending(self, reference: str) -> str:
        """The oldest unanswered key issued for ``reference``, else ``reference`` itself."""
        queue = self._by_ref.get(reference)
        while queue and queue[0] not in self._pending:
            queue.popleft()
        return queue[0] if queue else reference

    def _latest_pending(self, tool_name: str) -> str | None:
        stack = self._by_name.get(tool_name)
        while stack and stack[-1] not in self._pending:
            stack.pop()
        return stack[-1] if stack else None

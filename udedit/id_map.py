"""
Positional index from token array slots to CoNLL-U ids.

Every slot of a sentence's token list gets one entry: an ``int`` for a
nominal token, an :class:`EmptyId` ``(owner, k)`` for an empty token, and
:data:`COMPOUND_SLOT` for a multi-word token line, which has no id of its own.
The map stores the kind of every slot and derives the ids from the kinds, so
inserting or removing slots only needs the tail after the edit renumbered.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Iterable, List, NamedTuple, Union

from .tokens import Token, TokenKind

logger = logging.getLogger(__name__)


class EmptyId(NamedTuple):
    owner: int
    index: int

    def __str__(self) -> str:
        return f"{self.owner}.{self.index}"


class _CompoundSlot:
    def __repr__(self) -> str:
        return "COMPOUND_SLOT"

    def __str__(self) -> str:
        return "-"


COMPOUND_SLOT = _CompoundSlot()

SlotId = Union[int, EmptyId, _CompoundSlot]


def token_kind(token: Token) -> TokenKind:
    kind = getattr(token, "kind", None)
    if not isinstance(kind, TokenKind):
        raise TypeError(f"Unknown token type: {type(token).__name__}")
    return kind


def number_slots(kinds: Iterable[TokenKind], owner: int = 0, counter: int = 0) -> List[SlotId]:
    """Assign ids to a run of slot kinds.

    Args:
        kinds: Kinds of consecutive slots.
        owner: Id of the last nominal before the run (0 at sentence start).
        counter: Number of empty slots already counted under ``owner``.

    Returns:
        One id per kind.
    """
    ids: List[SlotId] = []
    for kind in kinds:
        if kind is TokenKind.NOMINAL:
            owner += 1
            counter = 0
            ids.append(owner)
        elif kind is TokenKind.EMPTY:
            counter += 1
            ids.append(EmptyId(owner, counter))
        elif kind is TokenKind.COMPOUND:
            ids.append(COMPOUND_SLOT)
        else:
            raise TypeError(f"Unknown token kind: {kind!r}")
    return ids


class TokenIdMap(Sequence):
    """Slot to id map kept in step with a token list."""

    def __init__(self, kinds: Iterable[TokenKind] = ()):
        self._kinds: List[TokenKind] = list(kinds)
        self._ids: List[SlotId] = number_slots(self._kinds)

    @classmethod
    def from_tokens(cls, tokens: Iterable[Token]) -> "TokenIdMap":
        return cls(token_kind(token) for token in tokens)

    def __getitem__(self, index):
        return self._ids[index]

    def __len__(self) -> int:
        return len(self._ids)

    def __eq__(self, other) -> bool:
        if isinstance(other, TokenIdMap):
            return self._kinds == other._kinds
        if isinstance(other, (list, tuple)):
            return self._ids == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"TokenIdMap({self._ids!r})"

    def kind_at(self, index: int) -> TokenKind:
        return self._kinds[index]

    def kinds(self) -> List[TokenKind]:
        return list(self._kinds)

    def copy(self) -> "TokenIdMap":
        return TokenIdMap(self._kinds)

    def find_index(self, slot_id: SlotId) -> int:
        """Index of the first slot whose id equals ``slot_id``, or -1."""
        for index, candidate in enumerate(self._ids):
            if candidate is COMPOUND_SLOT or slot_id is COMPOUND_SLOT:
                continue
            if type(candidate) is int and candidate == slot_id:
                return index
            if isinstance(candidate, EmptyId) and isinstance(slot_id, (tuple, list)) and candidate == tuple(slot_id):
                return index
        return -1

    def insert(self, index: int, kind: TokenKind, count: int = 1) -> None:
        """Insert ``count`` slots of ``kind`` before ``index`` (``index == len`` appends)."""
        if index < 0 or index > len(self._kinds):
            raise IndexError("Index out of bound")
        if count < 1:
            raise ValueError("count must be positive")
        self._kinds[index:index] = [kind] * count
        self._ids[index:index] = [COMPOUND_SLOT] * count
        self._renumber_from(index)
        logger.debug("Inserted %d %s slot(s) at %d", count, kind.value, index)

    def append(self, kind: TokenKind) -> None:
        self.insert(len(self._kinds), kind)

    def remove_chunk(self, index: int, count: int = 1) -> None:
        """Remove ``count`` consecutive slots starting at ``index``."""
        if index < 0 or count < 1 or index + count > len(self._kinds):
            raise IndexError("Index out of bound")
        del self._kinds[index:index + count]
        del self._ids[index:index + count]
        self._renumber_from(index)
        logger.debug("Removed %d slot(s) at %d", count, index)

    def clear(self) -> None:
        self._kinds.clear()
        self._ids.clear()

    def _state_before(self, index: int):
        # Compound slots do not reset the empty counter.
        for slot in reversed(self._ids[:index]):
            if isinstance(slot, EmptyId):
                return slot.owner, slot.index
            if slot is not COMPOUND_SLOT:
                return slot, 0
        return 0, 0

    def _renumber_from(self, index: int) -> None:
        owner, counter = self._state_before(index)
        self._ids[index:] = number_slots(self._kinds[index:], owner, counter)

"""
Structural editing of CoNLL-U sentences.

:class:`SentenceBuilder` wraps a :class:`~udedit.doc.Sentence` and edits its
token list in place: merging, splitting, inserting and removing tokens while
keeping ids, heads, enhanced dependencies and multi-word ranges consistent.

Every edit follows the same steps. The new id map is computed first, every
surviving slot's old id is paired with its new id, the references into removed
or merged tokens are resolved by the :class:`HeadPolicy`, and all heads and
deps are rewritten through that translation before the token list is spliced.
Preconditions are checked before anything is mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .doc import Comment, Meta, Sentence
from .errors import BuilderError
from .id_map import COMPOUND_SLOT, EmptyId, SlotId, TokenIdMap, token_kind
from .tokens import (
    SPACE_AFTER_PREFIX,
    EnhancedDep,
    Feature,
    NominalToken,
    Relation,
    SyntacticToken,
    Token,
    TokenKind,
    UPOS,
    XPOS,
    sort_deps,
    to_upos,
)

logger = logging.getLogger(__name__)

HeadRel = Tuple[Optional[int], Optional[Relation]]
# Old slot id -> new slot id; None deletes the reference.
IdTranslation = Dict[SlotId, Optional[SlotId]]


class HeadPolicy(Enum):
    """How references into removed or merged tokens are resolved."""

    ADJUST = "adjust"  # repoint to the surviving token
    REMOVE = "remove"  # drop the head/deprel or the deps entry


# ---------------------------------------------------------------------------
# Default merge callbacks. Each receives the merged tokens in sentence order.
# ---------------------------------------------------------------------------


def _join_surface(parts: Sequence[Tuple[str, bool]]) -> Optional[str]:
    """Join (text, space_after) pairs, separating with a space unless SpaceAfter=No."""
    if not parts:
        return None
    pieces: List[str] = []
    for position, (text, space_after) in enumerate(parts):
        pieces.append(text)
        if space_after and position < len(parts) - 1:
            pieces.append(" ")
    return "".join(pieces)


def merge_form(tokens: Sequence[SyntacticToken]) -> Optional[str]:
    return _join_surface([(token.form, token.space_after) for token in tokens if token.form])


def merge_lemma(tokens: Sequence[SyntacticToken]) -> Optional[str]:
    return _join_surface([(token.lemma, token.space_after) for token in tokens if token.lemma])


def first_upos(tokens: Sequence[SyntacticToken]) -> Optional[UPOS]:
    return tokens[0].upos


def first_xpos(tokens: Sequence[SyntacticToken]) -> Optional[XPOS]:
    return tokens[0].xpos


def union_feats(tokens: Sequence[SyntacticToken]) -> Optional[List[Feature]]:
    feats: List[Feature] = []
    for token in tokens:
        for feat in token.feats or ():
            if feat not in feats:
                feats.append(feat)
    return sorted(feats, key=lambda feat: feat.name) or None


def union_deps(tokens: Sequence[SyntacticToken]) -> Optional[List[EnhancedDep]]:
    deps: List[EnhancedDep] = []
    for token in tokens:
        for dep in token.deps or ():
            if dep not in deps:
                deps.append(dep)
    return sort_deps(deps) or None


def promote_root_head_rel(tokens: Sequence[NominalToken]) -> HeadRel:
    """The merged token is the root if any merged token was; otherwise it keeps the first token's head."""
    for token in tokens:
        if token.head == 0:
            return 0, Relation("root")
    return tokens[0].head, tokens[0].deprel


def merge_misc(tokens: Sequence[SyntacticToken]) -> Optional[List[str]]:
    misc: List[str] = []
    for token in tokens:
        for item in token.misc or ():
            if not item.startswith(SPACE_AFTER_PREFIX) and item not in misc:
                misc.append(item)
    space_after = [item for item in tokens[-1].misc or () if item.startswith(SPACE_AFTER_PREFIX)]
    misc.extend(space_after[:1])
    return misc or None


@dataclass
class MergePolicy:
    """Per-field callbacks computing the merged token from the tokens being merged."""

    head_policy: HeadPolicy = HeadPolicy.ADJUST
    form: Callable[[Sequence[SyntacticToken]], Optional[str]] = merge_form
    lemma: Callable[[Sequence[SyntacticToken]], Optional[str]] = merge_lemma
    upos: Callable[[Sequence[SyntacticToken]], Optional[UPOS]] = first_upos
    xpos: Callable[[Sequence[SyntacticToken]], Optional[XPOS]] = first_xpos
    feats: Callable[[Sequence[SyntacticToken]], Optional[List[Feature]]] = union_feats
    head_rel: Callable[[Sequence[NominalToken]], HeadRel] = promote_root_head_rel
    deps: Callable[[Sequence[SyntacticToken]], Optional[List[EnhancedDep]]] = union_deps
    misc: Callable[[Sequence[SyntacticToken]], Optional[List[str]]] = merge_misc


# ---------------------------------------------------------------------------
# Default split callbacks. Each receives the token being split.
# ---------------------------------------------------------------------------


def copy_lemma(token: SyntacticToken) -> Optional[str]:
    return token.lemma


def copy_upos(token: SyntacticToken) -> Optional[UPOS]:
    return token.upos


def copy_xpos(token: SyntacticToken) -> Optional[XPOS]:
    return token.xpos


def copy_feats(token: SyntacticToken) -> Optional[List[Feature]]:
    return list(token.feats) if token.feats is not None else None


def copy_head_rel(token: NominalToken) -> HeadRel:
    return token.head, token.deprel


def copy_deps(token: SyntacticToken) -> Optional[List[EnhancedDep]]:
    return list(token.deps) if token.deps is not None else None


def copy_misc(token: SyntacticToken) -> Optional[List[str]]:
    return list(token.misc) if token.misc is not None else None


@dataclass
class SplitPolicy:
    """Per-field callbacks giving every fragment of a split token its annotation."""

    lemma: Callable[[SyntacticToken], Optional[str]] = copy_lemma
    upos: Callable[[SyntacticToken], Optional[UPOS]] = copy_upos
    xpos: Callable[[SyntacticToken], Optional[XPOS]] = copy_xpos
    feats: Callable[[SyntacticToken], Optional[List[Feature]]] = copy_feats
    head_rel: Callable[[NominalToken], HeadRel] = copy_head_rel
    deps: Callable[[SyntacticToken], Optional[List[EnhancedDep]]] = copy_deps
    misc: Callable[[SyntacticToken], Optional[List[str]]] = copy_misc


def _translate_deps(deps: Iterable[EnhancedDep], translation: IdTranslation) -> List[EnhancedDep]:
    rewritten: List[EnhancedDep] = []
    for dep in deps:
        key = dep.head[0] if len(dep.head) == 1 else EmptyId(*dep.head)
        target = translation.get(key, key)
        if target is None:
            continue
        head = tuple(target) if isinstance(target, tuple) else (target,)
        if head != dep.head:
            dep = EnhancedDep(head, dep.rel)
        if dep not in rewritten:
            rewritten.append(dep)
    return sort_deps(rewritten)


def _set_deps(token: SyntacticToken, deps: Optional[List[EnhancedDep]]) -> None:
    if token.kind is TokenKind.EMPTY:
        token.deps = deps or []
    else:
        token.deps = deps or None


class SentenceBuilder:
    """Edits a sentence's token list in place.

    The builder shares the sentence's ``meta`` and ``tokens`` lists; nothing
    else may mutate them while the builder is in use. A call that raises
    leaves the sentence untouched.
    """

    def __init__(self, sentence: Optional[Sentence] = None):
        self.sentence = sentence if sentence is not None else Sentence()
        self.id_map = TokenIdMap.from_tokens(self.sentence.tokens)

    @classmethod
    def from_sentence(cls, sentence: Sentence) -> "SentenceBuilder":
        return cls(sentence)

    @property
    def tokens(self) -> List[Token]:
        return self.sentence.tokens

    @property
    def meta(self) -> list:
        return self.sentence.meta

    def build(self) -> Sentence:
        return self.sentence

    def clear(self) -> "SentenceBuilder":
        self.sentence.meta.clear()
        self.sentence.tokens.clear()
        self.id_map.clear()
        return self

    # -- meta ---------------------------------------------------------------

    def push_meta(self, key: str, value: Optional[str] = None) -> "SentenceBuilder":
        self.meta.append(Meta(key, value))
        return self

    def push_comment(self, text: str) -> "SentenceBuilder":
        self.meta.append(Comment(text))
        return self

    def find_meta_index(self, key: str) -> int:
        for index, line in enumerate(self.meta):
            if isinstance(line, Meta) and line.key == key:
                return index
        return -1

    def find_meta(self, key: str) -> Optional[Meta]:
        index = self.find_meta_index(key)
        return self.meta[index] if index >= 0 else None

    # -- lookup -------------------------------------------------------------

    def push_token(self, token: Token) -> "SentenceBuilder":
        kind = token_kind(token)
        self.tokens.append(token)
        self.id_map.append(kind)
        return self

    def push_tokens(self, *tokens: Token) -> "SentenceBuilder":
        for token in tokens:
            self.push_token(token)
        return self

    def get_id_by_index(self, index: int) -> SlotId:
        self._check_index(index)
        return self.id_map[index]

    def find_token_by_id(self, token_id, kind: TokenKind = TokenKind.NOMINAL) -> Optional[Token]:
        """Return the token with the given id.

        Args:
            token_id: ``int`` for a nominal token, ``(owner, k)`` for an empty
                token, ``(start, end)`` for a compound token.
            kind: Variant to look for.
        """
        if kind is TokenKind.COMPOUND:
            start, end = token_id
            for token in self.tokens:
                if token.kind is TokenKind.COMPOUND and token.id == (start, end):
                    return token
            return None
        index = self.id_map.find_index(token_id)
        if index < 0 or self.id_map.kind_at(index) is not kind:
            return None
        return self.tokens[index]

    # -- head / deps --------------------------------------------------------

    def upsert_head_by_index(self, token_index: int, head_index: Optional[int], relation) -> "SentenceBuilder":
        """Attach the token at ``token_index`` to the token at ``head_index`` (``None`` means the root)."""
        self._check_index(token_index)
        token = self.tokens[token_index]
        if token.kind is not TokenKind.NOMINAL:
            raise BuilderError("Only a nominal token can have a head")
        if head_index is None:
            head = 0
        else:
            self._check_index(head_index)
            if self.id_map.kind_at(head_index) is not TokenKind.NOMINAL:
                raise BuilderError("The head of a token must be a nominal token")
            head = self.id_map[head_index]
        token.head_rel = (head, relation)
        return self

    def upsert_dep_by_index(self, token_index: int, head_index: int, relation) -> "SentenceBuilder":
        """Add an enhanced dependency, replacing any existing one with the same head."""
        self._check_index(token_index)
        self._check_index(head_index)
        token = self.tokens[token_index]
        if token.kind is TokenKind.COMPOUND:
            raise BuilderError("A compound token cannot have deps")
        head_id = self.id_map[head_index]
        if head_id is COMPOUND_SLOT:
            raise BuilderError("The head of a deps entry must be a nominal or an empty token")
        dep = EnhancedDep(tuple(head_id) if isinstance(head_id, EmptyId) else (head_id,), relation)
        deps = [existing for existing in token.deps or () if existing.head != dep.head]
        deps.append(dep)
        token.deps = sort_deps(deps)
        return self

    # -- structural edits ---------------------------------------------------

    def insert_token(self, token: Token, index: int) -> "SentenceBuilder":
        """Insert ``token`` before ``index`` (``index == len(tokens)`` appends).

        References held by the other tokens follow the renumbering; the
        inserted token's own head and deps are taken as already renumbered.
        """
        kind = token_kind(token)
        if index < 0 or index > len(self.tokens):
            raise IndexError("Index out of bound")
        new_map = self.id_map.copy()
        new_map.insert(index, kind)
        translation = self._translation(new_map, lambda old: old if old < index else old + 1)
        self._rewrite_references(self.tokens, translation)
        if kind is TokenKind.NOMINAL:
            new_id = new_map[index]
            for position, other in enumerate(self.tokens):
                if other.kind is not TokenKind.COMPOUND:
                    continue
                if position >= index:
                    other.start += 1
                    other.end += 1
                elif other.covers(new_id):
                    other.end += 1
        self.tokens.insert(index, token)
        self.id_map = new_map
        logger.debug("Inserted %s token at %d", kind.value, index)
        return self

    def remove_token(self, index: int, policy: HeadPolicy = HeadPolicy.ADJUST) -> Token:
        """Remove the token at ``index`` and return it.

        With ``HeadPolicy.ADJUST`` references to the removed token move to the
        previous id (never below 1), which may leave a token pointing at
        itself; :meth:`remove_self_dependencies` repairs that. With
        ``HeadPolicy.REMOVE`` such references are dropped.
        """
        self._check_index(index)
        token = self.tokens[index]
        kind = token_kind(token)
        removed_id = self.id_map[index]
        new_map = self.id_map.copy()
        new_map.remove_chunk(index)
        translation = self._translation(
            new_map, lambda old: None if old == index else (old if old < index else old - 1)
        )
        if kind is TokenKind.NOMINAL:
            translation[removed_id] = max(removed_id - 1, 1) if policy is HeadPolicy.ADJUST else None
        elif kind is TokenKind.EMPTY:
            owner, k = removed_id
            translation[removed_id] = EmptyId(owner, max(k - 1, 1)) if policy is HeadPolicy.ADJUST else None
        self._rewrite_references((other for other in self.tokens if other is not token), translation)
        del self.tokens[index]
        self.id_map = new_map
        if kind is TokenKind.NOMINAL:
            for other in self.tokens:
                if other.kind is not TokenKind.COMPOUND:
                    continue
                if other.start > removed_id:
                    other.start -= 1
                    other.end -= 1
                elif other.covers(removed_id):
                    other.end -= 1
            self._drop_collapsed_compounds()
        logger.debug("Removed %s token %s at %d (%s)", kind.value, removed_id, index, policy.value)
        return token

    def merge(self, from_idx: int, to_idx: int, policy: Optional[MergePolicy] = None) -> "SentenceBuilder":
        """Merge the tokens ``from_idx..to_idx`` (inclusive) into the token at ``from_idx``."""
        policy = policy or MergePolicy()
        self._check_index(from_idx)
        self._check_index(to_idx)
        if from_idx >= to_idx:
            raise BuilderError("merge requires from_idx < to_idx")
        first, last = self.tokens[from_idx], self.tokens[to_idx]
        if first.kind is not last.kind:
            raise BuilderError("Cannot merge tokens of different types")
        if first.kind is TokenKind.COMPOUND:
            raise BuilderError("Compound tokens cannot be merged")
        if first.kind is TokenKind.EMPTY:
            self._merge_empty(from_idx, to_idx, policy)
        else:
            self._merge_nominal(from_idx, to_idx, policy)
        logger.debug("Merged %s tokens %d..%d", first.kind.value, from_idx, to_idx)
        return self

    def split(self, index: int, at: Iterable[int], policy: Optional[SplitPolicy] = None) -> "SentenceBuilder":
        """Split the form of the token at ``index`` at the character offsets ``at``.

        The token keeps ``form[:at[0]]`` and ``len(at)`` new tokens of the same
        type follow it, one per remaining slice.
        """
        policy = policy or SplitPolicy()
        self._check_index(index)
        token = self.tokens[index]
        if token.kind is TokenKind.COMPOUND:
            raise BuilderError("Only nominal or empty tokens can be split")
        form = token.form
        if not form:
            raise BuilderError("Cannot split a token without form")
        offsets = sorted(at)
        if not offsets:
            raise BuilderError("Split offsets must not be empty")
        if len(set(offsets)) != len(offsets) or offsets[0] <= 0 or offsets[-1] >= len(form):
            raise BuilderError(f"Split offsets must be distinct and within 1..{len(form) - 1}: {offsets}")

        count = len(offsets)
        old_id = self.id_map[index]
        new_map = self.id_map.copy()
        new_map.insert(index + 1, token.kind, count)
        translation = self._translation(new_map, lambda old: old if old <= index else old + count)
        self._rewrite_references(self.tokens, translation)
        if token.kind is TokenKind.NOMINAL:
            for position, other in enumerate(self.tokens):
                if other.kind is not TokenKind.COMPOUND:
                    continue
                if position > index:
                    other.start += count
                    other.end += count
                elif other.covers(old_id):
                    other.end += count

        fields = self._split_fields(token, policy)
        bounds = offsets + [len(form)]
        fragments = [
            type(token)(form=form[start:end], **self._split_fields(token, policy))
            for start, end in zip(bounds, bounds[1:])
        ]
        token.form = form[: offsets[0]]
        token.lemma = fields["lemma"]
        token.upos = to_upos(fields["upos"])
        token.xpos = fields["xpos"]
        token.feats = fields["feats"]
        token.misc = fields["misc"]
        _set_deps(token, sort_deps(fields["deps"]) if fields["deps"] else None)
        if token.kind is TokenKind.NOMINAL:
            token.head_rel = (fields["head"], fields["deprel"])
        self.tokens[index + 1:index + 1] = fragments
        self.id_map = new_map
        logger.debug("Split %s token %s at %s", token.kind.value, old_id, offsets)
        return self

    def remove_self_dependencies(self) -> "SentenceBuilder":
        """Point self-referencing heads at the root and drop deps pointing at their own token."""
        root_id = None
        for token, slot_id in zip(self.tokens, self.id_map):
            if token.kind is TokenKind.NOMINAL and token.head == 0:
                root_id = slot_id
                break
        for token, slot_id in zip(self.tokens, self.id_map):
            if token.kind is TokenKind.COMPOUND:
                continue
            if token.kind is TokenKind.NOMINAL and token.head == slot_id:
                if root_id is None:
                    logger.warning("Token %s points at itself and the sentence has no root; head removed", slot_id)
                    token.head_rel = (None, None)
                else:
                    token.head = root_id
            own_head = tuple(slot_id) if isinstance(slot_id, EmptyId) else (slot_id,)
            if token.deps and any(dep.head == own_head for dep in token.deps):
                _set_deps(token, [dep for dep in token.deps if dep.head != own_head])
                if token.kind is TokenKind.EMPTY and not token.deps:
                    logger.warning("Empty token %s has no deps left", slot_id)
        return self

    # -- internals ----------------------------------------------------------

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self.tokens):
            raise IndexError("Index out of bound")

    def _translation(self, new_map: TokenIdMap, new_position: Callable[[int], Optional[int]]) -> IdTranslation:
        """Pair the old id of every surviving slot with its id in ``new_map``."""
        translation: IdTranslation = {}
        for old_position, old_id in enumerate(self.id_map):
            if old_id is COMPOUND_SLOT:
                continue
            position = new_position(old_position)
            if position is None:
                continue
            new_id = new_map[position]
            if new_id != old_id:
                translation[old_id] = new_id
        return translation

    @staticmethod
    def _rewrite_references(tokens: Iterable[Token], translation: IdTranslation) -> None:
        if not translation:
            return
        for token in tokens:
            if token.kind is TokenKind.COMPOUND:
                continue
            if token.kind is TokenKind.NOMINAL and token.head not in (None, 0):
                head = translation.get(token.head, token.head)
                if head is None:
                    token.head_rel = (None, None)
                else:
                    token.head = head
            if token.deps:
                _set_deps(token, _translate_deps(token.deps, translation))

    def _drop_collapsed_compounds(self) -> None:
        for index in range(len(self.tokens) - 1, -1, -1):
            token = self.tokens[index]
            if token.kind is TokenKind.COMPOUND and token.end <= token.start:
                logger.debug("Dropping compound %r covering a single token", token.form)
                del self.tokens[index]
                self.id_map.remove_chunk(index)

    def _merge_empty(self, from_idx: int, to_idx: int, policy: MergePolicy) -> None:
        span = self.tokens[from_idx:to_idx + 1]
        if any(token.kind is not TokenKind.EMPTY for token in span):
            raise BuilderError("All tokens in an empty token merge must be empty tokens")
        owner, first_k = self.id_map[from_idx]
        if any(slot_id.owner != owner for slot_id in self.id_map[from_idx:to_idx + 1]):
            raise BuilderError("Merged empty tokens must belong to the same nominal token")
        last_k = self.id_map[to_idx].index
        count = to_idx - from_idx

        new_map = self.id_map.copy()
        new_map.remove_chunk(from_idx + 1, count)
        translation = self._translation(
            new_map,
            lambda old: old if old <= from_idx else (None if old <= to_idx else old - count),
        )
        target = EmptyId(owner, first_k) if policy.head_policy is HeadPolicy.ADJUST else None
        for k in range(first_k, last_k + 1):
            translation[EmptyId(owner, k)] = target
        self._rewrite_references(self.tokens, translation)

        merged = self._apply_merge_policy(span, policy)
        del self.tokens[from_idx + 1:to_idx + 1]
        self.id_map = new_map
        own_head = (owner, first_k)
        merged.deps = [dep for dep in merged.deps if dep.head != own_head]

    def _merge_nominal(self, from_idx: int, to_idx: int, policy: MergePolicy) -> None:
        first_id = self.id_map[from_idx]
        last_id = self.id_map[to_idx]
        offset = last_id - first_id
        count = to_idx - from_idx

        new_map = self.id_map.copy()
        new_map.remove_chunk(from_idx + 1, count)
        translation = self._translation(
            new_map,
            lambda old: old if old <= from_idx else (None if old <= to_idx else old - count),
        )
        target = first_id if policy.head_policy is HeadPolicy.ADJUST else None
        for slot_id in self.id_map[from_idx:to_idx + 1]:
            if slot_id is not COMPOUND_SLOT:
                translation[slot_id] = target

        for position, other in enumerate(self.tokens):
            if other.kind is not TokenKind.COMPOUND:
                continue
            if position > to_idx:
                other.start -= offset
                other.end -= offset
            elif position < from_idx and other.covers(first_id):
                other.end = other.end - offset if other.end >= last_id else first_id
        self._rewrite_references(self.tokens, translation)

        span = [token for token in self.tokens[from_idx:to_idx + 1] if token.kind is TokenKind.NOMINAL]
        merged = self._apply_merge_policy(span, policy)
        del self.tokens[from_idx + 1:to_idx + 1]
        self.id_map = new_map
        own_head = (first_id,)
        if merged.deps:
            _set_deps(merged, [dep for dep in merged.deps if dep.head != own_head])
        self._drop_collapsed_compounds()

    @staticmethod
    def _apply_merge_policy(tokens: List[SyntacticToken], policy: MergePolicy) -> SyntacticToken:
        merged = tokens[0]
        form = policy.form(tokens)
        lemma = policy.lemma(tokens)
        upos = policy.upos(tokens)
        xpos = policy.xpos(tokens)
        feats = policy.feats(tokens)
        deps = policy.deps(tokens)
        misc = policy.misc(tokens)
        head_rel = policy.head_rel(tokens) if merged.kind is TokenKind.NOMINAL else None

        merged.form = form if merged.kind is TokenKind.EMPTY else (form or "")
        merged.lemma = lemma
        merged.upos = to_upos(upos)
        merged.xpos = xpos
        merged.feats = feats
        merged.misc = misc
        _set_deps(merged, sort_deps(deps) if deps else None)
        if head_rel is not None:
            merged.head_rel = head_rel
        return merged

    @staticmethod
    def _split_fields(token: SyntacticToken, policy: SplitPolicy) -> dict:
        fields = {
            "lemma": policy.lemma(token),
            "upos": policy.upos(token),
            "xpos": policy.xpos(token),
            "feats": policy.feats(token),
            "deps": policy.deps(token),
            "misc": policy.misc(token),
        }
        if token.kind is TokenKind.NOMINAL:
            fields["head"], fields["deprel"] = policy.head_rel(token)
        elif fields["deps"] is None:
            fields["deps"] = []
        return fields

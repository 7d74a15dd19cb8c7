from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterable, List, Optional, Sequence, Tuple, Union

import regex

from .errors import ConlluFormatError, MalformedDepError

FEATURE_NAME_PATTERN = r"^[A-Z0-9][A-Z0-9a-z]*(\[[a-z0-9]+\])?$"
FEATURE_VALUE_PATTERN = r"^[A-Z0-9][a-zA-Z0-9]*$"
RELATION_PATTERN = r"^[a-z]+(:[a-z]+)?$"
DEPS_RELATION_PATTERN = (
    r"^[a-z]+(:[a-z]+)?"
    r"(:[\p{Ll}\p{Lm}\p{Lo}\p{M}]+(_[\p{Ll}\p{Lm}\p{Lo}\p{M}]+)*)?"
    r"(:[a-z]+)?$"
)

_FEATURE_NAME_RE = re.compile(FEATURE_NAME_PATTERN)
_FEATURE_VALUE_RE = re.compile(FEATURE_VALUE_PATTERN)
_RELATION_RE = re.compile(RELATION_PATTERN)
_DEPS_RELATION_RE = regex.compile(DEPS_RELATION_PATTERN)

SPACE_AFTER_PREFIX = "SpaceAfter="
SPACE_AFTER_NO = "SpaceAfter=No"


class TokenKind(Enum):
    """Variant of a token line."""

    NOMINAL = "nominal"
    EMPTY = "empty"
    COMPOUND = "compound"


class UPOS(str, Enum):
    """Universal part-of-speech tags."""

    ADJ = "ADJ"
    ADP = "ADP"
    ADV = "ADV"
    AUX = "AUX"
    CCONJ = "CCONJ"
    DET = "DET"
    INTJ = "INTJ"
    NOUN = "NOUN"
    NUM = "NUM"
    PART = "PART"
    PRON = "PRON"
    PROPN = "PROPN"
    PUNCT = "PUNCT"
    SCONJ = "SCONJ"
    SYM = "SYM"
    VERB = "VERB"
    X = "X"

    def __str__(self) -> str:
        return self.value


def to_upos(value: Union[str, UPOS, None]) -> Optional[UPOS]:
    if value is None or isinstance(value, UPOS):
        return value
    try:
        return UPOS(value)
    except ValueError as exc:
        raise ConlluFormatError(f"Unknown UPOS tag: {value!r}") from exc


class XPOS(ABC):
    """Language specific part-of-speech tag."""

    @abstractmethod
    def to_upos(self) -> Optional[UPOS]:
        """Return the universal tag this tag corresponds to, if known."""

    @abstractmethod
    def __str__(self) -> str:
        ...


class XPOSParser(ABC):
    """Turns the XPOS column text into an :class:`XPOS` value."""

    @abstractmethod
    def parse(self, text: str) -> XPOS:
        ...


@dataclass(frozen=True)
class RawXPOS(XPOS):
    """XPOS kept verbatim when no language specific parser is configured."""

    tag: str

    def to_upos(self) -> Optional[UPOS]:
        return None

    def __str__(self) -> str:
        return self.tag


class RawXPOSParser(XPOSParser):
    def parse(self, text: str) -> XPOS:
        return RawXPOS(text)


@dataclass(frozen=True)
class Feature:
    """A morphological feature such as ``Number=Plur`` or ``PronType=Int,Rel``."""

    name: str
    values: Tuple[str, ...]

    def __post_init__(self):
        if not _FEATURE_NAME_RE.match(self.name):
            raise ConlluFormatError(f"Feature name must match with this regex: {FEATURE_NAME_PATTERN}")
        values = tuple(sorted(self.values))
        if not values:
            raise ConlluFormatError(f"Feature {self.name} requires at least one value")
        if not all(_FEATURE_VALUE_RE.match(value) for value in values):
            raise ConlluFormatError("All feature value must match with this regex: [A-Z0-9][a-zA-Z0-9]*")
        object.__setattr__(self, "values", values)

    @classmethod
    def parse(cls, text: str) -> "Feature":
        name, sep, values = text.partition("=")
        if not sep:
            raise ConlluFormatError(f"Feature must have the form Name=Value: {text!r}")
        return cls(name, tuple(values.split(",")))

    def __str__(self) -> str:
        return f"{self.name}={','.join(self.values)}"


@dataclass(frozen=True)
class Relation:
    """Universal dependency relation, optionally with a subtype (``nmod:poss``)."""

    value: str

    def __post_init__(self):
        if not _RELATION_RE.match(self.value):
            raise ConlluFormatError(f"Relation must match with this regex: {RELATION_PATTERN}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DepsRelation:
    """Enhanced dependency relation; may carry a case marker in any script (``obl:ใน``)."""

    value: str

    def __post_init__(self):
        if not _DEPS_RELATION_RE.match(self.value):
            raise ConlluFormatError(f"Deps relation must match with this regex: {DEPS_RELATION_PATTERN}")

    def __str__(self) -> str:
        return self.value


def _coerce(value, cls):
    if value is None or isinstance(value, cls):
        return value
    return cls(value)


@dataclass(frozen=True)
class EnhancedDep:
    """One enhanced dependency edge.

    ``head`` is ``(id,)`` for an edge to a nominal token or ``(owner, k)`` for
    an edge to the k-th empty token after nominal ``owner``.
    """

    head: Tuple[int, ...]
    rel: DepsRelation

    def __post_init__(self):
        head = tuple(self.head) if isinstance(self.head, (list, tuple)) else (self.head,)
        if len(head) not in (1, 2):
            raise MalformedDepError(f"Head of deps must have one or two components, got {head!r}")
        object.__setattr__(self, "head", head)
        object.__setattr__(self, "rel", _coerce(self.rel, DepsRelation))

    @classmethod
    def parse(cls, text: str) -> "EnhancedDep":
        head, sep, rel = text.partition(":")
        if not sep:
            raise ConlluFormatError(f"Deps entry must have the form head:relation: {text!r}")
        parts = head.split(".")
        if len(parts) > 2:
            raise ConlluFormatError("ID of Deps must be either `int` or `int`.`int`")
        if not _is_decimal(parts[0]):
            raise ConlluFormatError("Deps contain non-numeric head position")
        if len(parts) == 2 and not _is_decimal(parts[1]):
            raise ConlluFormatError("Deps contain non-numeric null node position")
        return cls(tuple(int(part) for part in parts), DepsRelation(rel))

    @property
    def head_id(self) -> int:
        return self.head[0]

    @property
    def empty_index(self) -> Optional[int]:
        return self.head[1] if len(self.head) == 2 else None

    @property
    def is_empty_target(self) -> bool:
        return len(self.head) == 2

    def sort_key(self):
        return (self.head[0], self.head[1] if len(self.head) == 2 else 0, self.rel.value)

    def __str__(self) -> str:
        return f"{'.'.join(str(part) for part in self.head)}:{self.rel}"


def _is_decimal(text: str) -> bool:
    return text.isdecimal() and text.isascii()


DepLike = Union[EnhancedDep, Tuple[Sequence[int], Union[str, DepsRelation]]]


def sort_deps(deps: Iterable[EnhancedDep]) -> List[EnhancedDep]:
    return sorted(deps, key=EnhancedDep.sort_key)


def _coerce_deps(deps: Optional[Iterable[DepLike]]) -> Optional[List[EnhancedDep]]:
    if deps is None:
        return None
    return sort_deps(dep if isinstance(dep, EnhancedDep) else EnhancedDep(*dep) for dep in deps)


def _coerce_feats(feats) -> Optional[List[Feature]]:
    if feats is None:
        return None
    coerced = [feat if isinstance(feat, Feature) else Feature.parse(feat) for feat in feats]
    return sorted(coerced, key=lambda feat: feat.name)


def has_space_after(misc: Optional[Sequence[str]]) -> bool:
    return not misc or SPACE_AFTER_NO not in misc


@dataclass
class NominalToken:
    """An ordinary word or punctuation token (integer id)."""

    kind: ClassVar[TokenKind] = TokenKind.NOMINAL

    form: str
    lemma: Optional[str] = None
    upos: Optional[UPOS] = None
    xpos: Optional[XPOS] = None
    feats: Optional[List[Feature]] = None
    head: Optional[int] = None
    deprel: Optional[Relation] = None
    deps: Optional[List[EnhancedDep]] = None
    misc: Optional[List[str]] = None

    def __post_init__(self):
        self.upos = to_upos(self.upos)
        self.feats = _coerce_feats(self.feats)
        self.deprel = _coerce(self.deprel, Relation)
        self.deps = _coerce_deps(self.deps)
        self.misc = list(self.misc) if self.misc is not None else None

    @property
    def head_rel(self) -> Tuple[Optional[int], Optional[Relation]]:
        return self.head, self.deprel

    @head_rel.setter
    def head_rel(self, value: Tuple[Optional[int], Optional[Relation]]) -> None:
        head, deprel = value
        self.head = head
        self.deprel = _coerce(deprel, Relation)

    @property
    def space_after(self) -> bool:
        return has_space_after(self.misc)


@dataclass
class EmptyToken:
    """A null node addressed as ``owner.k``; it only takes part in enhanced dependencies."""

    kind: ClassVar[TokenKind] = TokenKind.EMPTY

    form: Optional[str] = None
    lemma: Optional[str] = None
    upos: Optional[UPOS] = None
    xpos: Optional[XPOS] = None
    feats: Optional[List[Feature]] = None
    deps: List[EnhancedDep] = field(default_factory=list)
    misc: Optional[List[str]] = None

    def __post_init__(self):
        self.upos = to_upos(self.upos)
        self.feats = _coerce_feats(self.feats)
        self.deps = _coerce_deps(self.deps) or []
        self.misc = list(self.misc) if self.misc is not None else None

    @property
    def space_after(self) -> bool:
        return has_space_after(self.misc)


@dataclass
class CompoundToken:
    """A multi-word token line summarising nominal ids ``start`` through ``end``."""

    kind: ClassVar[TokenKind] = TokenKind.COMPOUND

    start: int
    end: int
    form: str
    misc: Optional[List[str]] = None

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError("range must be [start, end] where end > start")
        self.misc = list(self.misc) if self.misc is not None else None

    @property
    def id(self) -> Tuple[int, int]:
        return self.start, self.end

    def covers(self, nominal_id: int) -> bool:
        return self.start <= nominal_id <= self.end


Token = Union[NominalToken, EmptyToken, CompoundToken]
SyntacticToken = Union[NominalToken, EmptyToken]

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TextIO, Tuple, Union

from .errors import ConlluFormatError, MalformedDepError
from .tokens import EnhancedDep, Token, TokenKind


@dataclass
class Meta:
    """A ``# key = value`` sentence attribute (``# key`` when there is no value)."""

    key: str
    value: Optional[str] = None

    def __post_init__(self):
        if not self.key:
            raise ValueError("Missing key from meta")

    @classmethod
    def parse(cls, line: str) -> "Meta":
        """Parse a comment line holding ``key = value``.

        Only the first ``#`` is stripped, so ``##sent_id=1`` has the key ``#sent_id``.
        """
        if not line.startswith("#"):
            raise ConlluFormatError(f"Meta line must start with '#': {line!r}")
        key, sep, value = line[1:].partition("=")
        if not sep:
            raise ConlluFormatError(f"Meta line must contain '=': {line!r}")
        return cls(key.strip(), value.strip())

    def __str__(self) -> str:
        if self.value:
            return f"# {self.key} = {self.value}"
        return f"# {self.key}"


@dataclass
class Comment:
    """A free-form ``#`` line that is not a key/value attribute."""

    text: Optional[str] = None

    def __post_init__(self):
        if self.text is not None:
            self.text = self.text.strip()

    @classmethod
    def parse(cls, line: str) -> "Comment":
        if not line.startswith("#"):
            raise ConlluFormatError(f"Comment line must start with '#': {line!r}")
        return cls(line[1:])

    def __str__(self) -> str:
        if self.text:
            return f"# {self.text}"
        return "#"


MetaLine = Union[Meta, Comment]


class SentenceValidationResult(Enum):
    OK = "Ok"
    COMPOUND_END_BEYOND_LAST_TOKEN = "CompoundEndBeyondLastTokenError"
    COMPOUND_OVERLAP = "CompoundOverlapError"
    COMPOUND_START_AFTER_TOKEN = "CompoundStartAfterTokenError"
    EMPTY_AFTER_COMPOUND = "EmptyAfterCompoundError"
    EMPTY_WITHOUT_DEPS = "EmptyWithoutDepsError"
    HEAD_OUT_OF_BOUND = "HeadOutOfBoundError"
    HEAD_WITHOUT_DEPREL = "HeadWithoutDeprelError"
    NON_INTEGER_HEAD = "NonIntegerHeadError"
    DEP_HEAD_OUT_OF_BOUND = "DepHeadOutOfBoundError"

    @property
    def ok(self) -> bool:
        return self is SentenceValidationResult.OK


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _collect_dep_targets(
    deps: Optional[Iterable[EnhancedDep]],
    nominal_targets: List[int],
    empty_targets: List[Tuple[int, int]],
) -> None:
    for dep in deps or ():
        head = dep.head
        if len(head) == 1:
            if not _is_int(head[0]):
                raise MalformedDepError(f"Deps head must be an integer, got {head[0]!r}")
            nominal_targets.append(head[0])
        elif len(head) == 2:
            if not (_is_int(head[0]) and _is_int(head[1])):
                raise MalformedDepError(f"Deps head of an empty token must be two integers, got {head!r}")
            empty_targets.append((head[0], head[1]))
        else:
            raise MalformedDepError(f"Head of deps must have one or two components, got {head!r}")


@dataclass
class Sentence:
    """Meta lines plus the ordered token lines of one CoNLL-U sentence."""

    meta: List[MetaLine] = field(default_factory=list)
    tokens: List[Token] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str, config=None) -> "Sentence":
        from .conllu import parse_sentence

        return parse_sentence(text, config=config)

    def to_conllu(self) -> str:
        from .conllu import sentence_to_conllu

        return sentence_to_conllu(self)

    def __str__(self) -> str:
        return self.to_conllu()

    def find_meta(self, key: str) -> Optional[Meta]:
        for line in self.meta:
            if isinstance(line, Meta) and line.key == key:
                return line
        return None

    @property
    def sent_id(self) -> Optional[str]:
        meta = self.find_meta("sent_id")
        return meta.value if meta else None

    @property
    def text(self) -> Optional[str]:
        meta = self.find_meta("text")
        return meta.value if meta else None

    @property
    def nominal_count(self) -> int:
        return sum(1 for token in self.tokens if token.kind is TokenKind.NOMINAL)

    def validate(self) -> SentenceValidationResult:
        """Check ids, heads and compound ranges in a single pass.

        Returns:
            The first problem found, or ``SentenceValidationResult.OK``.

        Raises:
            MalformedDepError: If a deps head is not one or two integers.
        """
        result = SentenceValidationResult
        token_total = self.nominal_count
        token_count = 0
        empty_counts: Dict[int, int] = defaultdict(int)
        compound_end: Optional[int] = None
        after_compound = False
        nominal_targets: List[int] = []
        empty_targets: List[Tuple[int, int]] = []

        for token in self.tokens:
            if token.kind is TokenKind.NOMINAL:
                token_count += 1
                after_compound = False
                if token.head is not None:
                    if not _is_int(token.head):
                        return result.NON_INTEGER_HEAD
                    if token.head < 0 or token.head > token_total:
                        return result.HEAD_OUT_OF_BOUND
                    if token.deprel is None:
                        return result.HEAD_WITHOUT_DEPREL
                _collect_dep_targets(token.deps, nominal_targets, empty_targets)
                if compound_end is not None and token_count >= compound_end:
                    compound_end = None
            elif token.kind is TokenKind.EMPTY:
                if after_compound:
                    return result.EMPTY_AFTER_COMPOUND
                if not token.deps:
                    return result.EMPTY_WITHOUT_DEPS
                empty_counts[token_count] += 1
                _collect_dep_targets(token.deps, nominal_targets, empty_targets)
            else:
                if compound_end is not None:
                    return result.COMPOUND_OVERLAP
                if token.start != token_count + 1:
                    return result.COMPOUND_START_AFTER_TOKEN
                compound_end = token.end
                after_compound = True

        # 0 is the artificial root and a valid enhanced head.
        for head in nominal_targets:
            if head < 0 or head > token_count:
                return result.HEAD_OUT_OF_BOUND
        for owner, k in empty_targets:
            if k < 1 or k > empty_counts.get(owner, 0):
                return result.DEP_HEAD_OUT_OF_BOUND
        if compound_end is not None:
            return result.COMPOUND_END_BEYOND_LAST_TOKEN
        return result.OK


@dataclass
class Document:
    """A sequence of sentences as stored in one CoNLL-U file."""

    sentences: List[Sentence] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str, config=None) -> "Document":
        from .conllu import conllu_to_document

        return conllu_to_document(text, config=config)

    @classmethod
    def read(cls, lines: Iterable[str], config=None) -> "Document":
        from .conllu import iter_sentences

        return cls(list(iter_sentences(lines, config=config)))

    @classmethod
    def load(cls, path: Union[str, Path], config=None) -> "Document":
        from .config import ConlluConfig

        config = config or ConlluConfig()
        with open(path, encoding=config.encoding) as handle:
            return cls.read(handle, config=config)

    def write(self, stream: TextIO) -> None:
        for sentence in self.sentences:
            stream.write(sentence.to_conllu())
            stream.write("\n\n")

    def save(self, path: Union[str, Path], config=None) -> None:
        from .config import ConlluConfig

        config = config or ConlluConfig()
        with open(path, "w", encoding=config.encoding) as handle:
            self.write(handle)

    def to_conllu(self) -> str:
        return "\n\n".join(sentence.to_conllu() for sentence in self.sentences)

    def __str__(self) -> str:
        return self.to_conllu()

    def validate(self) -> SentenceValidationResult:
        for sentence in self.sentences:
            outcome = sentence.validate()
            if not outcome.ok:
                return outcome
        return SentenceValidationResult.OK

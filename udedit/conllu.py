from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from .config import ConlluConfig
from .doc import Comment, Document, Meta, MetaLine, Sentence
from .errors import ConlluFormatError
from .id_map import TokenIdMap
from .tokens import (
    CompoundToken,
    EmptyToken,
    EnhancedDep,
    Feature,
    NominalToken,
    RawXPOSParser,
    Token,
    TokenKind,
    XPOS,
)

logger = logging.getLogger(__name__)

_RAW_XPOS_PARSER = RawXPOSParser()


def _field(value) -> str:
    if value is None or value == "":
        return "_"
    return str(value)


def _join(values, sep: str = "|") -> str:
    if not values:
        return "_"
    return sep.join(str(value) for value in values)


def format_token_line(token: Token, token_id: str) -> str:
    """Format one token as ten tab-separated columns."""
    if token.kind is TokenKind.COMPOUND:
        columns = [f"{token.start}-{token.end}", _field(token.form)] + ["_"] * 7 + [_join(token.misc)]
        return "\t".join(columns)
    head = token.head if token.kind is TokenKind.NOMINAL else None
    deprel = token.deprel if token.kind is TokenKind.NOMINAL else None
    columns = [
        token_id,
        _field(token.form),
        _field(token.lemma),
        _field(token.upos),
        _field(token.xpos),
        _join(token.feats),
        "_" if head is None else str(head),
        _field(deprel),
        _join(token.deps),
        _join(token.misc),
    ]
    return "\t".join(columns)


def sentence_to_conllu(sentence: Sentence) -> str:
    ids = TokenIdMap.from_tokens(sentence.tokens)
    lines = [str(line) for line in sentence.meta]
    for token, slot_id in zip(sentence.tokens, ids):
        lines.append(format_token_line(token, str(slot_id)))
    return "\n".join(lines)


def document_to_conllu(document: Document) -> str:
    return "\n\n".join(sentence_to_conllu(sentence) for sentence in document.sentences)


def parse_meta_line(line: str) -> MetaLine:
    """A ``#`` line is a Meta when it holds ``key = value`` and a Comment otherwise."""
    key, sep, _ = line[1:].partition("=")
    if sep and key.strip():
        return Meta.parse(line)
    return Comment.parse(line)


def _optional(text: str) -> Optional[str]:
    return None if text == "_" else text


def _parse_list(text: str) -> Optional[List[str]]:
    return None if text == "_" else text.split("|")


def _parse_int(text: str, what: str) -> int:
    try:
        return int(text)
    except ValueError as exc:
        raise ConlluFormatError(f"{what} must be an integer, got {text!r}") from exc


def _parse_feats(text: str) -> Optional[List[Feature]]:
    if text == "_":
        return None
    return [Feature.parse(item) for item in text.split("|")]


def _parse_deps(text: str) -> Optional[List[EnhancedDep]]:
    if text == "_":
        return None
    return [EnhancedDep.parse(item) for item in text.split("|")]


def _parse_xpos(text: str, config: ConlluConfig) -> Optional[XPOS]:
    if text == "_":
        return None
    parser = config.xpos_parser or _RAW_XPOS_PARSER
    return parser.parse(text)


def _parse_id_parts(token_id: str, sep: str) -> Tuple[int, int]:
    parts = token_id.split(sep)
    if len(parts) != 2 or not all(part.isdecimal() for part in parts):
        raise ConlluFormatError(f"Malformed token id: {token_id!r}")
    return int(parts[0]), int(parts[1])


def parse_token_line(line: str, config: Optional[ConlluConfig] = None) -> Token:
    """Parse a ten column token line into a Nominal, Empty or Compound token.

    Args:
        line: Token line without trailing newline.
        config: Parsing options; ``None`` uses defaults.

    Returns:
        The parsed token. Nominal and empty ids are positional, so the ID
        column only selects the token variant.
    """
    config = config or ConlluConfig()
    columns = line.split("\t")
    if len(columns) != 10:
        raise ConlluFormatError(f"Token line must have 10 columns, got {len(columns)}: {line!r}")
    token_id, form, lemma, upos, xpos, feats, head, deprel, deps, misc = columns

    if "-" in token_id:
        start, end = _parse_id_parts(token_id, "-")
        try:
            return CompoundToken(start, end, form, _parse_list(misc))
        except ValueError as exc:
            raise ConlluFormatError(f"Malformed compound id {token_id!r}: {exc}") from exc

    if "." in token_id:
        _parse_id_parts(token_id, ".")
        parsed_deps = _parse_deps(deps)
        if not parsed_deps:
            raise ConlluFormatError(f"EmptyToken requires non empty deps column: {line!r}")
        return EmptyToken(
            form=_optional(form),
            lemma=_optional(lemma),
            upos=_optional(upos),
            xpos=_parse_xpos(xpos, config),
            feats=_parse_feats(feats),
            deps=parsed_deps,
            misc=_parse_list(misc),
        )

    if not token_id.isdecimal():
        raise ConlluFormatError(f"Malformed token id: {token_id!r}")
    return NominalToken(
        form=form,
        lemma=_optional(lemma),
        upos=_optional(upos),
        xpos=_parse_xpos(xpos, config),
        feats=_parse_feats(feats),
        head=None if head == "_" else _parse_int(head, "HEAD"),
        deprel=_optional(deprel),
        deps=_parse_deps(deps),
        misc=_parse_list(misc),
    )


def _check_ids(tokens: List[Token], raw_ids: List[str]) -> None:
    for token, raw_id, slot_id in zip(tokens, raw_ids, TokenIdMap.from_tokens(tokens)):
        if token.kind is TokenKind.COMPOUND:
            continue
        if raw_id != str(slot_id):
            logger.warning("Token %r has id %s but its position gives %s", token.form, raw_id, slot_id)


def parse_sentence(source: Union[str, Iterable[str]], config: Optional[ConlluConfig] = None) -> Sentence:
    """Parse the lines of one sentence (blank lines are ignored)."""
    config = config or ConlluConfig()
    lines = source.splitlines() if isinstance(source, str) else source
    sentence = Sentence()
    raw_ids: List[str] = []
    for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line.strip():
            continue
        if line.startswith("#"):
            sentence.meta.append(parse_meta_line(line))
            continue
        try:
            token = parse_token_line(line, config)
        except ConlluFormatError as exc:
            if config.strict:
                raise
            logger.warning("Skipping malformed line %r: %s", line, exc)
            continue
        sentence.tokens.append(token)
        raw_ids.append(line.split("\t", 1)[0])
    if config.check_ids:
        _check_ids(sentence.tokens, raw_ids)
    return sentence


def iter_sentences(lines: Iterable[str], config: Optional[ConlluConfig] = None) -> Iterator[Sentence]:
    """Lazily yield sentences from a line source; blank lines end a sentence."""
    block: List[str] = []
    for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if line.strip():
            block.append(line)
            continue
        if block:
            yield parse_sentence(block, config)
            block = []
    if block:
        yield parse_sentence(block, config)


def conllu_to_document(conllu_text: str, config: Optional[ConlluConfig] = None) -> Document:
    return Document(list(iter_sentences(conllu_text.splitlines(), config)))

"""
Plain-text tables for inspecting sentences and validating documents.
"""

from __future__ import annotations

from typing import List

from tabulate import tabulate

from .doc import Document, Sentence
from .id_map import TokenIdMap
from .tokens import TokenKind


def _cell(value) -> str:
    if value is None:
        return "_"
    if isinstance(value, list):
        return "|".join(str(item) for item in value) or "_"
    return str(value)


def format_token_table(sentence: Sentence, tablefmt: str = "simple") -> str:
    """Render one row per token with its slot index and positional id."""
    rows: List[list] = []
    ids = TokenIdMap.from_tokens(sentence.tokens)
    for index, (token, slot_id) in enumerate(zip(sentence.tokens, ids)):
        if token.kind is TokenKind.COMPOUND:
            rows.append([index, f"{token.start}-{token.end}", token.kind.value, token.form, "_", "_", "_", "_"])
            continue
        head = token.head if token.kind is TokenKind.NOMINAL else None
        deprel = token.deprel if token.kind is TokenKind.NOMINAL else None
        rows.append([
            index,
            str(slot_id),
            token.kind.value,
            _cell(token.form),
            _cell(token.upos),
            _cell(head),
            _cell(deprel),
            _cell(token.deps),
        ])
    return tabulate(
        rows,
        headers=["Index", "ID", "Kind", "Form", "UPOS", "Head", "Deprel", "Deps"],
        tablefmt=tablefmt,
        disable_numparse=True,
    )


def format_validation_report(document: Document, tablefmt: str = "simple") -> str:
    """Validate every sentence and render the results, one row per sentence."""
    rows = []
    for number, sentence in enumerate(document.sentences, start=1):
        rows.append([number, sentence.sent_id or "_", sentence.validate().value])
    return tabulate(rows, headers=["Sentence", "sent_id", "Result"], tablefmt=tablefmt, disable_numparse=True)

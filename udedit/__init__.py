"""
udedit: parse, validate and structurally edit CoNLL-U sentences.

Tokens can be merged, split, inserted and removed while ids, heads, enhanced
dependencies and multi-word token ranges stay consistent.
"""

__version__ = "1.0.0"

from udedit.builder import HeadPolicy, MergePolicy, SentenceBuilder, SplitPolicy
from udedit.config import ConlluConfig
from udedit.doc import Comment, Document, Meta, Sentence, SentenceValidationResult
from udedit.errors import BuilderError, ConlluFormatError, MalformedDepError, UDEditError
from udedit.id_map import COMPOUND_SLOT, EmptyId, TokenIdMap
from udedit.tokens import (
    UPOS,
    XPOS,
    CompoundToken,
    DepsRelation,
    EmptyToken,
    EnhancedDep,
    Feature,
    NominalToken,
    RawXPOS,
    Relation,
    TokenKind,
    XPOSParser,
)

__all__ = [
    'BuilderError',
    'COMPOUND_SLOT',
    'Comment',
    'CompoundToken',
    'ConlluConfig',
    'ConlluFormatError',
    'DepsRelation',
    'Document',
    'EmptyId',
    'EmptyToken',
    'EnhancedDep',
    'Feature',
    'HeadPolicy',
    'MalformedDepError',
    'MergePolicy',
    'Meta',
    'NominalToken',
    'RawXPOS',
    'Relation',
    'Sentence',
    'SentenceBuilder',
    'SentenceValidationResult',
    'SplitPolicy',
    'TokenIdMap',
    'TokenKind',
    'UDEditError',
    'UPOS',
    'XPOS',
    'XPOSParser',
    '__version__',
]

"""
RDF-KV Statement Grammar

Classifies form keys and decomposes statement keys into typed templates.

A key is one of:

- a macro declaration: ``$ name`` or ``$ name $`` (the trailing ``$`` marks
  the declared values as containing macro references of their own)
- a statement template: ``[modifier] term1 [term2] [designator] [graph] [$]``
- anything else, which is ignored

Statement templates come in three shapes:

1. ``term1 [term2] [designator]`` - without term2 the subject is implied
   and term1 is the predicate, otherwise term1/term2 are subject/predicate
2. ``term1 designator graph`` - term1 is the predicate
3. ``term1 term2 [designator] graph`` - explicit subject, predicate, graph
"""

import re
import logging
from enum import Enum
from dataclasses import dataclass
from typing import FrozenSet, List, Optional

logger = logging.getLogger(__name__)


# XML name characters (no colon)
NCNAME_START_CHARS = (
    r"A-Za-z_\u00c0-\u00d6\u00d8-\u00f6\u00f8-\u02ff\u0370-\u037d"
    r"\u037f-\u1fff\u200c-\u200d\u2070-\u218f\u2c00-\u2fef\u3001-\ud7ff"
    r"\uf900-\ufdcf\ufdf0-\ufffd\U00010000-\U000effff"
)
NCNAME_CHARS = r"\-.0-9" + NCNAME_START_CHARS + r"\u00b7\u0300-\u036f\u203f-\u2040"
NCNAME = f"[{NCNAME_START_CHARS}][{NCNAME_CHARS}]*"

PREFIX = rf"(?:{NCNAME}|[A-Za-z][0-9A-Za-z.+-]*)"
TERM = rf"{PREFIX}:\S*"
LANGUAGE_TAG = r"[A-Za-z]+(?:-[0-9A-Za-z]+)*"

MODIFIER_RE = re.compile(r"^(?:[!=+-]|[+-]!|![+-])$")
TERM_RE = re.compile(rf"^{TERM}$")
DESIGNATOR_RE = re.compile(rf"^(?:([:_'])|@({LANGUAGE_TAG})|\^({TERM}))$")
DECLARATION_RE = re.compile(rf"^\s*\$\s+({NCNAME})(?:\s+(\$))?\s*$")
MACRO_RE = re.compile(rf"\$\{{({NCNAME})\}}|\$({NCNAME})")

DEREFERENCE_MARK = "$"


class Modifier(Enum):
    """Statement modifiers."""
    INSERT = "+"
    DELETE = "-"
    OVERWRITE = "="
    REVERSE = "!"


class DesignatorKind(Enum):
    """How a value is turned into a term."""
    RESOURCE = ":"
    BLANK = "_"
    LITERAL = "'"
    LANGUAGE = "@"
    DATATYPE = "^"


class KeyKind(Enum):
    """Classification of a form key."""
    DECLARATION = "declaration"
    STATEMENT = "statement"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class Designator:
    """A designator with its language tag or datatype token."""
    kind: DesignatorKind
    argument: Optional[str] = None

    @property
    def is_resource(self) -> bool:
        return self.kind in (DesignatorKind.RESOURCE, DesignatorKind.BLANK)

    def __str__(self):
        return self.kind.value + (self.argument or "")


RESOURCE = Designator(DesignatorKind.RESOURCE)
LITERAL = Designator(DesignatorKind.LITERAL)


@dataclass(frozen=True)
class Declaration:
    """A macro declaration key."""
    name: str
    pending: bool = False


@dataclass(frozen=True)
class StatementTemplate:
    """A decomposed statement key.

    ``term2`` is the explicit predicate when present (``term1`` then being
    the explicit subject); otherwise ``term1`` is the predicate. ``designator``
    is ``None`` when the key did not name one.
    """
    modifiers: FrozenSet[Modifier]
    term1: str
    term2: Optional[str] = None
    designator: Optional[Designator] = None
    graph: Optional[str] = None
    dereference: bool = False

    @property
    def reverse(self) -> bool:
        return Modifier.REVERSE in self.modifiers

    @property
    def overwrite(self) -> bool:
        return Modifier.OVERWRITE in self.modifiers

    @property
    def delete(self) -> bool:
        return Modifier.DELETE in self.modifiers

    def effective_designator(self) -> Designator:
        """The designator, defaulting to resource for reverse statements and plain literal otherwise."""
        if self.designator is not None:
            return self.designator
        return RESOURCE if self.reverse else LITERAL


@dataclass(frozen=True)
class ClassifiedKey:
    """A form key with its classification.

    A statement key whose text contains macro references may carry no
    ``template``: it is only parsed after the macros are expanded.
    """
    key: str
    kind: KeyKind
    declaration: Optional[Declaration] = None
    template: Optional[StatementTemplate] = None


def has_macro_references(text: str) -> bool:
    return MACRO_RE.search(text) is not None


def parse_declaration(key: str) -> Optional[Declaration]:
    match = DECLARATION_RE.match(key)
    if not match:
        return None
    return Declaration(name=match.group(1), pending=match.group(2) is not None)


def parse_modifiers(token: str) -> FrozenSet[Modifier]:
    """Parse a modifier token such as ``-``, ``=`` or ``!+``."""
    return frozenset(Modifier(char) for char in token)


def parse_designator(token: str) -> Optional[Designator]:
    match = DESIGNATOR_RE.match(token)
    if not match:
        return None
    sigil, language, datatype = match.groups()
    if sigil is not None:
        return Designator(DesignatorKind(sigil))
    if language is not None:
        return Designator(DesignatorKind.LANGUAGE, language)
    return Designator(DesignatorKind.DATATYPE, datatype)


def _token_kind(token: str) -> Optional[str]:
    if TERM_RE.match(token):
        return "T"
    if DESIGNATOR_RE.match(token):
        return "D"
    return None


def _build_template(shape: str, tokens: List[str], modifiers: FrozenSet[Modifier],
                    dereference: bool) -> Optional[StatementTemplate]:
    """Map a token shape onto the roles of a statement template."""
    if shape in ("T", "TT", "TD", "TTD"):
        term1 = tokens[0]
        term2 = tokens[1] if shape.startswith("TT") else None
        designator = parse_designator(tokens[-1]) if shape.endswith("D") else None
        return StatementTemplate(modifiers, term1, term2, designator, None, dereference)

    if shape == "TDT":
        return StatementTemplate(modifiers, tokens[0], None, parse_designator(tokens[1]),
                                 tokens[2], dereference)

    if shape in ("TTT", "TTDT"):
        designator = parse_designator(tokens[2]) if shape == "TTDT" else None
        return StatementTemplate(modifiers, tokens[0], tokens[1], designator,
                                 tokens[-1], dereference)

    return None


def parse_statement(key: str) -> Optional[StatementTemplate]:
    """Parse a statement key into a template.

    Args:
        key: The form key, with any macros already expanded

    Returns:
        The template, or None if the key does not match any statement shape
    """
    tokens = key.split()
    dereference = False
    if tokens and tokens[-1] == DEREFERENCE_MARK:
        dereference = True
        tokens = tokens[:-1]

    modifiers: FrozenSet[Modifier] = frozenset()
    if tokens and MODIFIER_RE.match(tokens[0]):
        modifiers = parse_modifiers(tokens[0])
        tokens = tokens[1:]

    if not tokens:
        return None

    kinds = [_token_kind(token) for token in tokens]
    if None in kinds:
        return None

    return _build_template("".join(kinds), tokens, modifiers, dereference)


def classify(key: str) -> ClassifiedKey:
    """Classify a form key as a declaration, a statement candidate or neither."""
    declaration = parse_declaration(key)
    if declaration is not None:
        return ClassifiedKey(key, KeyKind.DECLARATION, declaration=declaration)

    if has_macro_references(key):
        return ClassifiedKey(key, KeyKind.STATEMENT)

    template = parse_statement(key)
    if template is not None:
        return ClassifiedKey(key, KeyKind.STATEMENT, template=template)

    logger.debug(f"Ignoring unrecognized key: {key!r}")
    return ClassifiedKey(key, KeyKind.UNRECOGNIZED)

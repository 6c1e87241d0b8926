"""
RDF-KV Processor

Turns one form submission (a mapping of keys to one or many values) into
an EditSet of quads to insert and delete.

A processor carries a session: the current subject, graph and prefixes.
The special macros ``$ SUBJECT``, ``$ GRAPH`` and ``$ PREFIX`` change the
session before any statement in the same submission is evaluated, and the
change persists on the processor after ``process`` returns. ``process`` is
not transactional: an error raised after the special macros were applied
leaves the session already changed. A processor must not be shared between
concurrent requests; create one per request or serialize access.
"""

import re
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from rdflib import Namespace
from rdflib.term import Node

from .errors import ConfigurationError, SpecialMacroError
from .grammar import PREFIX as PREFIX_NAME, KeyKind, StatementTemplate, classify, parse_statement
from .macros import MacroTable, ResolvedTable, dereference, render
from .terms import TermCallback, TermResolver, build_prefix_map, is_resource
from ..model.edit_model import Edit, EditOperation, EditSet

logger = logging.getLogger(__name__)


PREFIX_DECLARATION_RE = re.compile(rf"^\s*({PREFIX_NAME})\s*:\s*(\S+)\s*$")

FormItems = List[Tuple[str, List[str]]]


@dataclass
class Session:
    """Subject, graph and prefixes that statements are resolved against."""
    subject: Node
    graph: Optional[Node] = None
    prefixes: Dict[str, Namespace] = field(default_factory=build_prefix_map)
    callback: Optional[TermCallback] = None

    def copy(self) -> "Session":
        return replace(self, prefixes=dict(self.prefixes))

    def resolver(self) -> TermResolver:
        return TermResolver(self.subject, self.prefixes, self.callback)


class SpecialMacro(Enum):
    """Declared macros that change the session. Applied in this order."""
    SUBJECT = "SUBJECT"
    GRAPH = "GRAPH"
    PREFIX = "PREFIX"

    def apply(self, session: Session, values: List[str]) -> None:
        """Apply the macro values to the session.

        Raises:
            ValueError: If a value is not a resource or not a prefix declaration
        """
        if self is SpecialMacro.SUBJECT:
            session.subject = self._resource(session, values[-1])
        elif self is SpecialMacro.GRAPH:
            session.graph = self._resource(session, values[-1])
        elif self is SpecialMacro.PREFIX:
            for value in values:
                match = PREFIX_DECLARATION_RE.match(value)
                if not match:
                    raise ValueError(f"Expected 'name: uri', got {value!r}")
                name, namespace = match.groups()
                session.prefixes[name] = Namespace(namespace)
                logger.debug(f"Prefix {name}: set to {namespace}")
        else:
            raise ValueError(f"Unhandled special macro {self.value}")

    def _resource(self, session: Session, value: str) -> Node:
        value = value.strip()
        if not value:
            raise ValueError("empty value")
        term = session.resolver().resolve_term(value)
        if not is_resource(term):
            raise ValueError(f"{value!r} is not a resource")
        logger.debug(f"{self.value} set to {term}")
        return term


def form_items(form: Mapping) -> FormItems:
    """Normalize a form mapping into (key, values) pairs.

    Multi-dicts exposing ``getlist`` contribute every value of a key.
    Scalars become one-element lists and None means no value.
    """
    getlist = getattr(form, "getlist", None)
    items: FormItems = []
    for key in form.keys():
        if not isinstance(key, str):
            logger.debug(f"Ignoring non-string key: {key!r}")
            continue

        raw = getlist(key) if callable(getlist) else form[key]
        if raw is None:
            values = []
        elif isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
            values = [raw]
        else:
            values = list(raw)

        items.append((key, [v.decode("utf-8") if isinstance(v, bytes) else str(v) for v in values]))
    return items


class KVProcessor:
    """Converts form submissions into graph edits.

    Args:
        subject: The default subject, a URIRef or BNode
        graph: Optional default graph, a URIRef or BNode
        prefixes: Optional mapping of prefix name to namespace, merged over rdf/rdfs/owl/xsd
        callback: Optional function applied to every coerced value term

    Raises:
        ConfigurationError: If an argument has the wrong type
    """

    def __init__(self, subject: Node, graph: Optional[Node] = None,
                 prefixes: Optional[Mapping[str, str]] = None,
                 callback: Optional[TermCallback] = None):
        if not is_resource(subject):
            raise ConfigurationError(f"Subject must be a URIRef or BNode, got {subject!r}")
        if graph is not None and not is_resource(graph):
            raise ConfigurationError(f"Graph must be a URIRef or BNode, got {graph!r}")
        if prefixes is not None and not isinstance(prefixes, Mapping):
            raise ConfigurationError(f"Prefixes must be a mapping, got {type(prefixes).__name__}")
        if callback is not None and not callable(callback):
            raise ConfigurationError("Callback must be callable")

        self._session = Session(subject, graph, build_prefix_map(prefixes), callback)
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @property
    def subject(self) -> Node:
        return self._session.subject

    @property
    def graph(self) -> Optional[Node]:
        return self._session.graph

    @property
    def prefixes(self) -> Mapping[str, Namespace]:
        return MappingProxyType(self._session.prefixes)

    @property
    def callback(self) -> Optional[TermCallback]:
        return self._session.callback

    def process(self, form: Mapping) -> EditSet:
        """Process one form submission.

        Args:
            form: Mapping of key to a value or list of values

        Returns:
            EditSet with the inserts and deletes described by the form

        Raises:
            ConfigurationError: If form is not a mapping
            MacroError: If the declared macros reference themselves or each other
            SpecialMacroError: If SUBJECT, GRAPH or PREFIX cannot be applied
            DatatypeError: If a datatype designator is not a URI
        """
        if not isinstance(form, Mapping):
            raise ConfigurationError(f"Form input must be a mapping, got {type(form).__name__}")

        table = MacroTable()
        candidates = []
        for key, values in form_items(form):
            classified = classify(key)
            if classified.kind is KeyKind.DECLARATION:
                declaration = classified.declaration
                table.declare(declaration.name, values, declaration.pending)
            elif classified.kind is KeyKind.STATEMENT:
                candidates.append((classified, values))

        resolved = table.resolve()

        session = self._session.copy()
        self._apply_special_macros(session, resolved)
        self._session = session

        edits = EditSet()
        resolver = session.resolver()
        for classified, values in candidates:
            for template in self._templates(classified.key, classified.template, resolved):
                self._assemble(template, values, session, resolver, resolved, edits)

        self.logger.info(f"Processed {len(candidates)} statements: "
                         f"{len(edits.inserts)} inserts, {len(edits.deletes)} deletes")
        return edits

    def _apply_special_macros(self, session: Session, resolved: ResolvedTable) -> None:
        for special in SpecialMacro:
            values = resolved.get(special.value)
            if not values:
                continue
            try:
                special.apply(session, [render(value) for value in values])
            except ValueError as e:
                raise SpecialMacroError(special.value, str(e)) from e

    def _templates(self, key: str, template: Optional[StatementTemplate],
                   resolved: ResolvedTable) -> Iterator[StatementTemplate]:
        """Yield the templates of a statement key, expanding its macros."""
        if template is not None:
            yield template
            return

        for expanded in dereference([key], resolved):
            template = parse_statement(expanded)
            if template is None:
                logger.debug(f"Discarding {expanded!r} expanded from {key!r}")
                continue
            yield template

    def _assemble(self, template: StatementTemplate, raw_values: List[str], session: Session,
                  resolver: TermResolver, resolved: ResolvedTable, edits: EditSet) -> None:
        """Add the edits for one statement template."""
        designator = template.effective_designator()
        if template.reverse and not designator.is_resource:
            logger.debug(f"Discarding reverse statement with literal designator {designator}")
            return

        term1 = resolver.resolve_term(template.term1)
        term2 = resolver.resolve_term(template.term2) if template.term2 is not None else None
        graph = resolver.resolve_term(template.graph) if template.graph is not None else session.graph

        # the value goes into the subject position of reverse statements
        if template.reverse:
            predicate = term1
            anchor = term2 if term2 is not None else session.subject
        elif term2 is None:
            predicate, anchor = term1, session.subject
        else:
            anchor, predicate = term1, term2

        if template.dereference:
            raw_values = dereference(raw_values, resolved)
        values = list(dict.fromkeys(value.strip() for value in raw_values))

        if template.overwrite or (template.delete and "" in values):
            edits.add(self._edit(EditOperation.DELETE, template.reverse, anchor, predicate, None, graph))
            if not template.overwrite:
                return

        operation = EditOperation.DELETE if template.delete else EditOperation.INSERT
        for value in values:
            if not value:
                continue
            term = resolver.coerce_term(value, designator)
            if term is None:
                continue
            edits.add(self._edit(operation, template.reverse, anchor, predicate, term, graph))

    @staticmethod
    def _edit(operation: EditOperation, reverse: bool, anchor: Node, predicate: Node,
              value: Optional[Node], graph: Optional[Node]) -> Edit:
        if reverse:
            return Edit(operation, value, predicate, anchor, graph)
        return Edit(operation, anchor, predicate, value, graph)

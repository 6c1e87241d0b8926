"""
RDF-KV Term Resolver

Turns tokens from form keys and values into rdflib terms, given a prefix
map and the current subject.
"""

import logging
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Union

from rdflib import BNode, Literal, Namespace, URIRef
from rdflib.namespace import OWL, RDF, RDFS, XSD
from rdflib.term import Identifier, Node

from .errors import DatatypeError
from .grammar import Designator, DesignatorKind

logger = logging.getLogger(__name__)


DEFAULT_PREFIXES = MappingProxyType({
    "rdf": str(RDF),
    "rdfs": str(RDFS),
    "owl": str(OWL),
    "xsd": str(XSD),
})

BLANK_NODE_PREFIX = "_:"

TermCallback = Callable[[Node], Node]


def build_prefix_map(prefixes: Optional[Mapping[str, Union[str, Namespace]]] = None) -> Dict[str, Namespace]:
    """Merge caller prefixes over the default prefixes.

    Args:
        prefixes: Optional mapping of prefix name to namespace URI

    Returns:
        A new dict of prefix name to Namespace
    """
    prefix_map = {name: Namespace(base) for name, base in DEFAULT_PREFIXES.items()}
    for name, base in (prefixes or {}).items():
        prefix_map[str(name)] = Namespace(str(base))
    return prefix_map


def is_resource(term) -> bool:
    return isinstance(term, (URIRef, BNode))


class TermResolver:
    """Resolves tokens against a prefix map and a base subject."""

    def __init__(self, subject: Node, prefixes: Mapping[str, Namespace],
                 callback: Optional[TermCallback] = None):
        self.subject = subject
        self.prefixes = prefixes
        self.callback = callback

    def resolve_term(self, token: Union[str, Identifier]) -> Node:
        """Resolve a key token to a URI or blank node.

        ``_:x`` is a blank node, ``prefix:suffix`` with a known prefix (and a
        suffix not starting with ``/``) is expanded, and anything else is a
        URI reference relative to the subject.
        """
        if isinstance(token, Identifier):
            return token

        if token.startswith(BLANK_NODE_PREFIX):
            return BNode(token[len(BLANK_NODE_PREFIX):])

        prefix, colon, suffix = token.partition(":")
        if colon and not suffix.startswith("/") and prefix in self.prefixes:
            return self.prefixes[prefix][suffix]

        return self.absolute_uri(token)

    def absolute_uri(self, reference: str) -> URIRef:
        """Resolve a URI reference against the subject."""
        if isinstance(self.subject, URIRef):
            return URIRef(reference, base=str(self.subject))
        return URIRef(reference)

    def coerce_term(self, token: str, designator: Designator) -> Optional[Node]:
        """Coerce a form value into a term according to its designator.

        Args:
            token: The (trimmed) value
            designator: Resource, blank node, plain, language or datatype designator

        Returns:
            The term, or None for an empty value under a resource designator

        Raises:
            DatatypeError: If the datatype does not resolve to a URI
        """
        kind = designator.kind

        if designator.is_resource:
            if not token:
                return None
            if kind is DesignatorKind.BLANK:
                label = token[len(BLANK_NODE_PREFIX):] if token.startswith(BLANK_NODE_PREFIX) else token
                term = BNode(label)
            else:
                term = self.resolve_term(token)
        elif kind is DesignatorKind.LANGUAGE:
            term = Literal(token, lang=designator.argument)
        elif kind is DesignatorKind.DATATYPE:
            term = Literal(token, datatype=self.resolve_datatype(designator.argument))
        else:
            term = Literal(token)

        if self.callback is not None:
            term = self.callback(term)
        return term

    def resolve_datatype(self, token: Optional[str]) -> URIRef:
        if not token:
            raise DatatypeError("", "Datatype designator has no datatype")
        datatype = self.resolve_term(token)
        if not isinstance(datatype, URIRef):
            raise DatatypeError(token)
        return datatype

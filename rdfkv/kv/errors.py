"""
RDF-KV Error Types

Exceptions raised while constructing a processor or turning form input
into graph edits. All of them abort the current ``process`` call.
"""

from typing import Iterable, Optional


class RDFKVError(Exception):
    """Base class for all RDF-KV errors."""
    pass


class ConfigurationError(RDFKVError):
    """Raised for bad constructor arguments, bad input or bad config files."""
    pass


class MacroError(RDFKVError):
    """Raised when the declared macros cannot be resolved."""
    pass


class SelfReferenceError(MacroError):
    """A macro value refers to its own macro."""

    def __init__(self, name: str):
        super().__init__(f"Macro ${name} references itself")
        self.name = name


class CycleError(MacroError):
    """Two or more macros depend on each other."""

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(f"Macro dependency cycle: {' -> '.join('$' + n for n in self.names)}")


class SpecialMacroError(RDFKVError):
    """Raised when SUBJECT, GRAPH or PREFIX cannot be applied to the session."""

    def __init__(self, name: str, message: str):
        super().__init__(f"Could not apply ${name}: {message}")
        self.name = name


class DatatypeError(RDFKVError, ValueError):
    """A datatype designator did not resolve to a URI."""

    def __init__(self, token: str, message: Optional[str] = None):
        super().__init__(message or f"Datatype {token!r} does not resolve to a URI")
        self.token = token

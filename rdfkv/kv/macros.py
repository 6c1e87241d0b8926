"""
RDF-KV Macro Table and Dereferencer

Macros are named, possibly multi-valued pieces of text that can be
substituted into statement keys and values as ``$name`` or ``${name}``.

Besides the macros declared by the form itself, every table carries a
fixed set of generated macros (fresh UUIDs, blank node labels, the current
time). A generated macro is invoked anew at every substitution, so two
references to ``$NEW_UUID`` produce two different identifiers unless the
value is first captured in a declared macro.
"""

import base64
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, List, Union

from .errors import CycleError, SelfReferenceError
from .grammar import MACRO_RE

logger = logging.getLogger(__name__)


MacroValue = Union[str, Callable[[], str]]
ResolvedTable = Dict[str, List[MacroValue]]


class GeneratedMacro(Enum):
    """Built-in macros whose value is generated on every use."""
    NEW_UUID = "NEW_UUID"
    NEW_UUID_URN = "NEW_UUID_URN"
    NEW_BNODE = "NEW_BNODE"
    NEW_TIME = "NEW_TIME"

    def generate(self) -> str:
        """Produce a fresh value for this macro."""
        if self is GeneratedMacro.NEW_UUID:
            return str(uuid.uuid4())
        elif self is GeneratedMacro.NEW_UUID_URN:
            return uuid.uuid4().urn
        elif self is GeneratedMacro.NEW_BNODE:
            label = base64.urlsafe_b64encode(uuid.uuid4().bytes).decode("ascii").rstrip("=")
            return "_:b" + label.replace("-", "_")
        elif self is GeneratedMacro.NEW_TIME:
            return datetime.now(timezone.utc).isoformat()
        raise ValueError(f"No generator for macro {self.value}")


GENERATED_NAMES = frozenset(macro.value for macro in GeneratedMacro)


def find_macro_names(text: str) -> List[str]:
    """Names referenced in ``text``, in order of first appearance."""
    names = (match.group(1) or match.group(2) for match in MACRO_RE.finditer(text))
    return list(dict.fromkeys(names))


def render(value: MacroValue) -> str:
    return value() if callable(value) else value


@dataclass(frozen=True)
class MacroEntry:
    """One value of a macro.

    ``pending`` is False when the value is used as-is, or the set of macro
    names its text refers to when it must be dereferenced before use.
    """
    value: MacroValue
    pending: Union[bool, FrozenSet[str]] = False

    @property
    def is_generator(self) -> bool:
        return callable(self.value)


class MacroTable:
    """Ordered mapping from macro name to its values.

    Declaring a name twice appends to its values. Generated macro names
    cannot be redeclared.
    """

    def __init__(self):
        self._entries: Dict[str, List[MacroEntry]] = {}
        for macro in GeneratedMacro:
            self._entries[macro.value] = [MacroEntry(macro.generate)]

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __getitem__(self, name: str) -> List[MacroEntry]:
        return list(self._entries[name])

    def declare(self, name: str, values: Iterable[str], pending: bool = False) -> None:
        """Append values to a macro.

        Args:
            name: Macro name
            values: Declared values, in order
            pending: Whether the values contain macro references to resolve
        """
        if name in GENERATED_NAMES:
            logger.debug(f"Ignoring redeclaration of generated macro ${name}")
            return

        values = list(values)
        if not values:
            return

        entries = self._entries.setdefault(name, [])
        for value in values:
            references = frozenset(find_macro_names(value)) if pending else frozenset()
            entries.append(MacroEntry(value, references or False))

    def dependencies(self, name: str) -> List[str]:
        """Bound macro names referenced by the pending values of ``name``."""
        names: Dict[str, None] = {}
        for entry in self._entries.get(name, []):
            if entry.pending:
                for reference in sorted(entry.pending):
                    if reference in self._entries:
                        names[reference] = None
        return list(names)

    def resolve(self) -> ResolvedTable:
        """Substitute macro references inside macro values.

        Dependencies are resolved depth first on an explicit stack, so chains
        of any length resolve without recursion.
        Generated macros stay generators except where a declared value
        captures them.

        Returns:
            Mapping of name to its fully resolved values

        Raises:
            SelfReferenceError: If a value refers to its own macro
            CycleError: If macros depend on each other
        """
        resolved: ResolvedTable = {}

        for root in self._entries:
            if root in resolved:
                continue

            stack = [root]
            remaining = [iter(self._checked_dependencies(root))]
            while stack:
                name = stack[-1]
                for dependency in remaining[-1]:
                    if dependency in resolved:
                        continue
                    if dependency in stack:
                        raise CycleError(stack[stack.index(dependency):] + [dependency])
                    stack.append(dependency)
                    remaining.append(iter(self._checked_dependencies(dependency)))
                    break
                else:
                    stack.pop()
                    remaining.pop()
                    resolved[name] = self._resolved_values(name, resolved)

        return resolved

    def _checked_dependencies(self, name: str) -> List[str]:
        dependencies = self.dependencies(name)
        if name in dependencies:
            raise SelfReferenceError(name)
        return dependencies

    def _resolved_values(self, name: str, resolved: ResolvedTable) -> List[MacroValue]:
        values: List[MacroValue] = []
        for entry in self._entries[name]:
            if entry.pending:
                values.extend(dereference_string(entry.value, resolved))
            else:
                values.append(entry.value)

        if any(entry.pending for entry in self._entries[name]):
            logger.debug(f"Resolved ${name}")
        return values


def dereference_string(text: str, resolved: ResolvedTable) -> List[str]:
    """Expand the macro references in one string.

    Every multi-valued macro multiplies the number of results. Unbound
    references are kept as written.
    """
    results = [""]
    position = 0
    for match in MACRO_RE.finditer(text):
        literal = text[position:match.start()]
        position = match.end()
        values = resolved.get(match.group(1) or match.group(2))
        if values is None:
            literal += match.group(0)
            results = [result + literal for result in results]
        else:
            results = [result + literal + render(value) for result in results for value in values]

    tail = text[position:]
    return [result + tail for result in results]


def dereference(strings: Iterable[str], resolved: ResolvedTable) -> List[str]:
    """Expand the macro references in each string, preserving order."""
    expanded: List[str] = []
    for text in strings:
        expanded.extend(dereference_string(text, resolved))
    return expanded

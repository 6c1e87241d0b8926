"""Edit Model Classes

Graph edits produced from form input, and Pydantic models for returning
them as JSON.
"""

import logging
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field
from rdflib import BNode, Dataset, Graph
from rdflib.graph import DATASET_DEFAULT_GRAPH_ID
from rdflib.term import Node

logger = logging.getLogger(__name__)


class EditOperation(Enum):
    """Kind of graph edit."""
    INSERT = "insert"
    DELETE = "delete"


@dataclass(frozen=True)
class Edit:
    """A single quad to insert or delete.

    A ``None`` subject or object is a wildcard (deletes only), a ``None``
    graph is the default graph.
    """
    operation: EditOperation
    subject: Optional[Node]
    predicate: Node
    object: Optional[Node]
    graph: Optional[Node] = None

    @property
    def quad(self) -> Tuple[Optional[Node], Node, Optional[Node], Optional[Node]]:
        return (self.subject, self.predicate, self.object, self.graph)

    @property
    def is_wildcard(self) -> bool:
        return self.subject is None or self.object is None

    def to_model(self) -> "QuadModel":
        return QuadModel(
            subject=_n3(self.subject),
            predicate=self.predicate.n3(),
            object=_n3(self.object),
            graph=_n3(self.graph),
        )


def _n3(term: Optional[Node]) -> Optional[str]:
    return term.n3() if term is not None else None


class QuadModel(BaseModel):
    """A quad with terms in N3 notation."""
    subject: Optional[str] = Field(None, description="Subject, null for any subject")
    predicate: str = Field(..., description="Predicate")
    object: Optional[str] = Field(None, description="Object, null for any object")
    graph: Optional[str] = Field(None, description="Graph, null for the default graph")


class EditSetModel(BaseModel):
    """JSON form of an edit set."""
    deletes: List[QuadModel] = Field(default_factory=list, description="Quads to delete")
    inserts: List[QuadModel] = Field(default_factory=list, description="Quads to insert")
    deleted_count: int = Field(0, description="Number of delete edits")
    added_count: int = Field(0, description="Number of insert edits")


class EditSet:
    """Ordered inserts and deletes. Edits are not deduplicated."""

    def __init__(self):
        self.inserts: List[Edit] = []
        self.deletes: List[Edit] = []

    def add(self, edit: Edit) -> None:
        if edit.operation is EditOperation.DELETE:
            self.deletes.append(edit)
        else:
            self.inserts.append(edit)

    def __len__(self) -> int:
        return len(self.inserts) + len(self.deletes)

    def __iter__(self) -> Iterator[Edit]:
        """Iterate deletes first, then inserts, in the order they are applied."""
        yield from self.deletes
        yield from self.inserts

    def __repr__(self):
        return f"EditSet(inserts={len(self.inserts)}, deletes={len(self.deletes)})"

    def apply(self, target: Graph) -> Graph:
        """Apply the edits to an rdflib graph.

        Deletes are applied before inserts. A Dataset receives quads, with
        edits lacking a graph going to its default graph; any other Graph
        receives triples and the graph component is ignored.

        Args:
            target: Graph or Dataset to modify in place

        Returns:
            The modified target
        """
        for edit in self.deletes:
            target.remove(self._pattern(target, edit))
        for edit in self.inserts:
            target.add(self._pattern(target, edit))

        logger.debug(f"Applied {len(self.deletes)} deletes and {len(self.inserts)} inserts")
        return target

    @staticmethod
    def _pattern(target: Graph, edit: Edit) -> tuple:
        if isinstance(target, Dataset):
            graph = edit.graph if edit.graph is not None else DATASET_DEFAULT_GRAPH_ID
            return (edit.subject, edit.predicate, edit.object, graph)
        return (edit.subject, edit.predicate, edit.object)

    def to_sparql_update(self) -> str:
        """Render the edits as a SPARQL 1.1 Update request.

        Wildcard deletes and deletes involving blank nodes become
        ``DELETE WHERE`` operations, other deletes are grouped into one
        ``DELETE DATA``, inserts into one ``INSERT DATA``.
        """
        operations = []

        concrete = []
        for edit in self.deletes:
            if edit.is_wildcard or any(isinstance(term, BNode) for term in edit.quad[:3]):
                operations.append(f"DELETE WHERE {{\n{_data_block([_pattern_line(edit)], edit.graph)}}}")
            else:
                concrete.append(edit)

        if concrete:
            operations.append(f"DELETE DATA {{\n{_grouped_blocks(concrete)}}}")
        if self.inserts:
            operations.append(f"INSERT DATA {{\n{_grouped_blocks(self.inserts)}}}")

        return " ;\n".join(operations)

    def to_model(self) -> EditSetModel:
        return EditSetModel(
            deletes=[edit.to_model() for edit in self.deletes],
            inserts=[edit.to_model() for edit in self.inserts],
            deleted_count=len(self.deletes),
            added_count=len(self.inserts),
        )


def _triple_line(edit: Edit) -> str:
    return f"{edit.subject.n3()} {edit.predicate.n3()} {edit.object.n3()} ."


def _pattern_line(edit: Edit) -> str:
    variables: Dict[str, str] = {}

    def position(term: Optional[Node], wildcard: str) -> str:
        if term is None:
            return wildcard
        if isinstance(term, BNode):
            return variables.setdefault(str(term), f"?b{len(variables)}")
        return term.n3()

    subject = position(edit.subject, "?s")
    predicate = position(edit.predicate, "?p")
    obj = position(edit.object, "?o")
    return f"{subject} {predicate} {obj} ."


def _data_block(lines: List[str], graph: Optional[Node]) -> str:
    if graph is None:
        return "".join(f"  {line}\n" for line in lines)
    body = "".join(f"    {line}\n" for line in lines)
    return f"  GRAPH {graph.n3()} {{\n{body}  }}\n"


def _grouped_blocks(edits: List[Edit]) -> str:
    by_graph: Dict[Optional[Node], List[str]] = {}
    for edit in edits:
        by_graph.setdefault(edit.graph, []).append(_triple_line(edit))
    return "".join(_data_block(lines, graph) for graph, lines in by_graph.items())

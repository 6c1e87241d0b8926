"""
Sample Form Fixtures

Terms and form submissions used across the RDF-KV tests.
"""

from collections.abc import Mapping
from typing import Dict, Iterator, List

from rdflib import Namespace, URIRef


DCT = Namespace("http://purl.org/dc/terms/")
XHV = Namespace("http://www.w3.org/1999/xhtml/vocab#")

ROOT = URIRef("https://my.website/")
SUBJECT = URIRef("https://my.website/internet/home/page")
GRAPH = URIRef("https://my.website/graphs/main")


class MultiValueForm(Mapping):
    """Minimal multi-dict: item access returns the last value, getlist all of them."""

    def __init__(self, pairs: List[tuple]):
        self._values: Dict[str, List[str]] = {}
        for key, value in pairs:
            self._values.setdefault(key, []).append(value)

    def __getitem__(self, key: str) -> str:
        return self._values[key][-1]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def getlist(self, key: str) -> List[str]:
        return list(self._values.get(key, []))


def create_page_form() -> Dict[str, object]:
    """A typical edit form for the sample page."""
    return {
        "$ PREFIX": "ex: http://example.org/ns#",
        "= dct:title": "A new title",
        "- dct:subject :": "",
        "ex:tag": ["red", "green", "red"],
        "xhv:index :": "/",
        "submit": "Save",
    }

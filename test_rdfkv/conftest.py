"""Shared fixtures for the RDF-KV test suite."""

import sys
import logging
from pathlib import Path

import pytest

# Add the parent directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from rdfkv.kv.processor import KVProcessor
from test_rdfkv.fixtures.sample_forms import DCT, XHV, SUBJECT

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')


@pytest.fixture
def subject():
    return SUBJECT


@pytest.fixture
def processor():
    """Processor for the sample page, with dct and xhv registered."""
    return KVProcessor(SUBJECT, prefixes={"dct": str(DCT), "xhv": str(XHV)})


@pytest.fixture
def bare_processor():
    """Processor with only the default prefixes."""
    return KVProcessor(SUBJECT)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("RDFKV_SUBJECT", "RDFKV_GRAPH", "RDFKV_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

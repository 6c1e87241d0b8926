# -*- coding: utf-8 -*-
import logging

from .kv.errors import (
    RDFKVError,
    ConfigurationError,
    MacroError,
    SelfReferenceError,
    CycleError,
    SpecialMacroError,
    DatatypeError,
)
from .kv.processor import KVProcessor
from .model.edit_model import Edit, EditOperation, EditSet


__version__ = "0.1.0"


class NullHandler(logging.Handler):
    """
    Null handler.

    c.f.
    http://docs.python.org/howto/logging.html#library-config
    """

    def emit(self, record):
        """Emit."""
        pass


hndlr = NullHandler()
logging.getLogger("rdfkv").addHandler(hndlr)


__all__ = [
    "KVProcessor",
    "Edit",
    "EditOperation",
    "EditSet",
    "RDFKVError",
    "ConfigurationError",
    "MacroError",
    "SelfReferenceError",
    "CycleError",
    "SpecialMacroError",
    "DatatypeError",
]

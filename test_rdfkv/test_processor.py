"""
Test suite for KVProcessor.

Covers the full path from a form submission to an EditSet:
- plain, delete, wildcard delete and overwrite statements
- macros in keys and values, generated macros
- the SUBJECT, GRAPH and PREFIX special macros
- reverse statements and explicit subjects and graphs
- error handling
"""

import pytest
from rdflib import BNode, Literal, URIRef
from rdflib.namespace import XSD

from rdfkv.kv.errors import (
    ConfigurationError,
    CycleError,
    DatatypeError,
    SelfReferenceError,
    SpecialMacroError,
)
from rdfkv.kv.processor import KVProcessor
from rdfkv.model.edit_model import Edit, EditOperation
from test_rdfkv.fixtures.sample_forms import (
    DCT,
    GRAPH,
    ROOT,
    SUBJECT,
    XHV,
    MultiValueForm,
    create_page_form,
)

INSERT = EditOperation.INSERT
DELETE = EditOperation.DELETE


class TestBasicOperation:

    def test_simple_statements_are_inserted(self, processor):
        edits = processor.process({
            "xhv:index :": "/",
            str(DCT.title): "Hi!",
        })

        assert Edit(INSERT, SUBJECT, XHV["index"], ROOT) in edits.inserts
        assert Edit(INSERT, SUBJECT, DCT.title, Literal("Hi!")) in edits.inserts
        assert edits.deletes == []

    def test_statement_is_deleted(self, processor):
        edits = processor.process({"- dct:title": "Hi!"})
        assert edits.deletes == [Edit(DELETE, SUBJECT, DCT.title, Literal("Hi!"))]
        assert edits.inserts == []

    def test_empty_delete_is_a_wildcard(self, processor):
        edits = processor.process({"- dct:title": ""})
        assert [edit.quad for edit in edits.deletes] == [(SUBJECT, DCT.title, None, None)]
        assert edits.deletes[0].is_wildcard

    def test_wildcard_delete_discards_other_values(self, processor):
        edits = processor.process({"- dct:title": ["Hi!", ""]})
        assert [edit.quad for edit in edits.deletes] == [(SUBJECT, DCT.title, None, None)]

    def test_overwrite_deletes_then_inserts(self, processor):
        edits = processor.process({"= dct:title": ["New", ""]})
        assert [edit.quad for edit in edits.deletes] == [(SUBJECT, DCT.title, None, None)]
        assert edits.inserts == [Edit(INSERT, SUBJECT, DCT.title, Literal("New"))]

    def test_values_are_trimmed_and_deduplicated(self, processor):
        edits = processor.process({"dct:title": [" Hi ", "Hi", "Ho"]})
        assert [edit.object for edit in edits.inserts] == [Literal("Hi"), Literal("Ho")]

    def test_empty_values_produce_nothing(self, processor):
        assert len(processor.process({"dct:title": "", "dct:source :": "  "})) == 0

    def test_unrecognized_keys_are_ignored(self, processor):
        assert len(processor.process({"submit": "Save", "title": "x", "dct:title : :": "y"})) == 0

    def test_designators(self, processor):
        edits = processor.process({
            "dct:date ^xsd:date": "2020-01-01",
            "dct:title @en": "Hello",
            "dct:creator _": "alice",
        })

        objects = [edit.object for edit in edits.inserts]
        assert Literal("2020-01-01", datatype=XSD.date) in objects
        assert Literal("Hello", lang="en") in objects
        assert BNode("alice") in objects

    def test_multi_value_form(self, processor):
        form = MultiValueForm([("dct:subject :", "/a"), ("dct:subject :", "/b")])
        edits = processor.process(form)
        assert [edit.object for edit in edits.inserts] == [
            URIRef("https://my.website/a"), URIRef("https://my.website/b")
        ]

    def test_page_form(self, processor):
        edits = processor.process(create_page_form())

        assert [edit.quad for edit in edits.deletes] == [
            (SUBJECT, DCT.title, None, None),
            (SUBJECT, DCT.subject, None, None),
        ]
        assert [edit.quad for edit in edits.inserts] == [
            (SUBJECT, DCT.title, Literal("A new title"), None),
            (SUBJECT, URIRef("http://example.org/ns#tag"), Literal("red"), None),
            (SUBJECT, URIRef("http://example.org/ns#tag"), Literal("green"), None),
            (SUBJECT, XHV["index"], ROOT, None),
        ]


class TestSubjectsAndGraphs:

    def test_explicit_subject(self, processor):
        edits = processor.process({"https://other.example/s dct:title": "T"})
        assert edits.inserts[0].quad == (URIRef("https://other.example/s"), DCT.title, Literal("T"), None)

    def test_graph_override(self, processor):
        edits = processor.process({"dct:title ' https://g.example/": "T"})
        assert edits.inserts[0].quad == (SUBJECT, DCT.title, Literal("T"), URIRef("https://g.example/"))

    def test_subject_predicate_designator_graph(self, processor):
        edits = processor.process({"_:b1 dct:title @en https://g.example/": "T"})
        assert edits.inserts[0].quad == (
            BNode("b1"), DCT.title, Literal("T", lang="en"), URIRef("https://g.example/")
        )

    def test_constructor_graph(self):
        processor = KVProcessor(SUBJECT, graph=GRAPH, prefixes={"dct": str(DCT)})
        edits = processor.process({"dct:title": "T"})
        assert edits.inserts[0].graph == GRAPH


class TestReverse:

    def test_reverse_puts_value_in_subject_position(self, processor):
        edits = processor.process({"! dct:hasPart :": "/parent"})
        assert edits.inserts == [Edit(INSERT, URIRef("https://my.website/parent"), DCT.hasPart, SUBJECT)]

    def test_reverse_defaults_to_resource(self, processor):
        edits = processor.process({"! dct:hasPart": "/parent"})
        assert edits.inserts[0].subject == URIRef("https://my.website/parent")

    def test_reverse_with_literal_designator_is_discarded(self, processor):
        assert len(processor.process({"! dct:title '": "x"})) == 0

    def test_reverse_delete_with_explicit_object(self, processor):
        edits = processor.process({"!- dct:hasPart https://my.website/other :": "/parent"})
        assert edits.deletes == [
            Edit(DELETE, URIRef("https://my.website/parent"), DCT.hasPart, URIRef("https://my.website/other"))
        ]


class TestMacros:

    def test_value_macro(self, processor):
        edits = processor.process({"$ lol": "Hi!", "dct:title $": "$lol"})
        assert edits.inserts == [Edit(INSERT, SUBJECT, DCT.title, Literal("Hi!"))]

    def test_values_are_not_dereferenced_without_flag(self, processor):
        edits = processor.process({"$ lol": "Hi!", "dct:title": "$lol"})
        assert edits.inserts[0].object == Literal("$lol")

    def test_multi_valued_macro(self, processor):
        edits = processor.process({"$ lol": ["Hi!", "lolwut"], "dct:title $": "$lol"})
        assert Edit(INSERT, SUBJECT, DCT.title, Literal("lolwut")) in edits.inserts
        assert len(edits.inserts) == 2

    def test_long_macro_chain(self, processor):
        form = {f"$ m{i} $": f"$m{i + 1}" for i in range(1500)}
        form["$ m1500"] = "end"
        form["dct:title $"] = "$m0"

        edits = processor.process(form)
        assert edits.inserts == [Edit(INSERT, SUBJECT, DCT.title, Literal("end"))]

    def test_generated_value(self, processor):
        edits = processor.process({"dct:audience : $": "$NEW_UUID_URN"})
        term = edits.inserts[0].object
        assert isinstance(term, URIRef)
        assert term.startswith("urn:uuid:")

    def test_generated_bnode(self, processor):
        edits = processor.process({"dct:hasPart : $": "$NEW_BNODE"})
        assert isinstance(edits.inserts[0].object, BNode)

    def test_generated_values_differ_between_statements(self, processor):
        edits = processor.process({"dct:identifier $": "$NEW_UUID", "dct:alternative $": "$NEW_UUID"})
        first, second = [edit.object for edit in edits.inserts]
        assert first != second

    def test_captured_generated_value_is_shared(self, processor):
        edits = processor.process({
            "$ id $": "$NEW_UUID",
            "dct:identifier $": "$id",
            "dct:alternative $": "$id",
        })
        first, second = [edit.object for edit in edits.inserts]
        assert first == second

    def test_macro_in_key(self, processor):
        edits = processor.process({"$ p": ["dct:title", "dct:description"], "$p": "X"})
        assert [edit.predicate for edit in edits.inserts] == [DCT.title, DCT.description]

    def test_non_matching_key_expansion_is_discarded(self, processor):
        edits = processor.process({"$ p": ["dct:title", "not a term"], "$p": "X"})
        assert [edit.predicate for edit in edits.inserts] == [DCT.title]

    def test_self_reference_fails(self, processor):
        with pytest.raises(SelfReferenceError):
            processor.process({"$ a $": "x $a", "dct:title": "T"})

    def test_cycle_fails(self, processor):
        with pytest.raises(CycleError):
            processor.process({"$ a $": "$b", "$ b $": "$a", "dct:title": "T"})


class TestSpecialMacros:

    def test_special_macros_update_the_session(self, bare_processor):
        edits = bare_processor.process({
            "$ GRAPH": "http://foo.com/lol",
            "$ SUBJECT": "urn:uuid:7c04f768-e23f-488b-9357-de15e7e1ac70",
            "$ PREFIX": "foo: http://foo.bar/prefix",
        })

        assert len(edits) == 0
        assert bare_processor.graph == URIRef("http://foo.com/lol")
        assert bare_processor.subject == URIRef("urn:uuid:7c04f768-e23f-488b-9357-de15e7e1ac70")
        assert str(bare_processor.prefixes["foo"]) == "http://foo.bar/prefix"

    def test_prefix_is_usable_in_the_same_call(self, bare_processor):
        edits = bare_processor.process({"$ PREFIX": "ex: http://example.org/ns#", "ex:name": "Alice"})
        assert edits.inserts == [Edit(INSERT, SUBJECT, URIRef("http://example.org/ns#name"), Literal("Alice"))]

    def test_subject_and_graph_apply_to_the_same_call(self, processor):
        edits = processor.process({
            "$ SUBJECT": "/other",
            "$ GRAPH": "https://g.example/",
            "dct:title": "T",
        })
        assert edits.inserts[0].quad == (
            URIRef("https://my.website/other"), DCT.title, Literal("T"), URIRef("https://g.example/")
        )

    def test_last_subject_wins(self, processor):
        processor.process({"$ SUBJECT": ["https://a.example/", "https://b.example/"]})
        assert processor.subject == URIRef("https://b.example/")

    def test_session_persists_between_calls(self, processor):
        processor.process({"$ GRAPH": "https://g.example/"})
        edits = processor.process({"dct:title": "T"})
        assert edits.inserts[0].graph == URIRef("https://g.example/")

    def test_malformed_prefix(self, processor):
        with pytest.raises(SpecialMacroError) as exc_info:
            processor.process({"$ PREFIX": "garbage"})
        assert exc_info.value.name == "PREFIX"
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_empty_subject(self, processor):
        with pytest.raises(SpecialMacroError):
            processor.process({"$ SUBJECT": "  "})
        assert processor.subject == SUBJECT

    def test_session_is_not_rolled_back_on_later_errors(self, processor):
        with pytest.raises(DatatypeError):
            processor.process({"$ SUBJECT": "https://new.example/s", "dct:date ^_:nope": "2020"})
        assert processor.subject == URIRef("https://new.example/s")

    def test_macro_errors_leave_the_session_untouched(self, processor):
        with pytest.raises(SelfReferenceError):
            processor.process({"$ a $": "$a", "$ SUBJECT": "https://new.example/s"})
        assert processor.subject == SUBJECT


class TestConfiguration:

    @pytest.mark.parametrize("subject", ["https://example.org/", Literal("x"), None])
    def test_subject_must_be_a_resource(self, subject):
        with pytest.raises(ConfigurationError):
            KVProcessor(subject)

    def test_graph_must_be_a_resource(self):
        with pytest.raises(ConfigurationError):
            KVProcessor(SUBJECT, graph="https://example.org/g")

    def test_callback_must_be_callable(self):
        with pytest.raises(ConfigurationError):
            KVProcessor(SUBJECT, callback=42)

    @pytest.mark.parametrize("form", [["dct:title"], "dct:title", None])
    def test_input_must_be_a_mapping(self, processor, form):
        with pytest.raises(ConfigurationError):
            processor.process(form)

    def test_default_prefixes_are_not_shared(self):
        first = KVProcessor(SUBJECT)
        first.process({"$ PREFIX": "rdf: http://other.example/"})
        assert str(KVProcessor(SUBJECT).prefixes["rdf"]) == "http://www.w3.org/1999/02/22-rdf-syntax-ns#"

    def test_callback_is_applied(self):
        def shout(term):
            return Literal(str(term).upper()) if isinstance(term, Literal) else term

        processor = KVProcessor(SUBJECT, prefixes={"dct": str(DCT)}, callback=shout)
        edits = processor.process({"dct:title": "hi", "dct:source :": "/"})
        assert [edit.object for edit in edits.inserts] == [Literal("HI"), ROOT]

"""XML decoding tests - generic attribute tree and prefix selection."""

import pytest

from qt_scope.errors import MalformedDocument
from qt_scope.parsers.xml_tree import (
    SELECT_BY_ID,
    SELECT_BY_NAME,
    XmlNode,
    decode_document,
    local_name,
    read_document,
    to_int,
)


class TestToInt:
    """Tests for numeric attribute coercion."""

    def test_parses_integers(self):
        assert to_int("1024") == 1024

    def test_missing_and_blank_are_zero(self):
        assert to_int(None) == 0
        assert to_int("") == 0
        assert to_int("   ") == 0

    def test_invalid_is_zero(self):
        assert to_int("abc") == 0

    def test_float_strings_truncate(self):
        assert to_int("12.9") == 12

    def test_negative_clamped_to_zero(self):
        assert to_int("-5") == 0


class TestLocalName:
    def test_strips_namespace_uri(self):
        assert local_name("{http://example.com/ns}Vertex") == "Vertex"

    def test_strips_prefix(self):
        assert local_name("scope:Vertex") == "Vertex"

    def test_plain_name_unchanged(self):
        assert local_name("Vertex") == "Vertex"


class TestDecodeDocument:
    """Tests for decoding raw XML into XmlNode trees."""

    def test_decodes_tree(self):
        tree = decode_document("<Root a='1'><Child id='SV1'/><Child id='SV2'/></Root>")
        assert tree.tag == "Root"
        assert tree.get("a") == "1"
        assert len(tree.children) == 2

    def test_namespaces_are_reduced(self):
        tree = decode_document('<r:Root xmlns:r="urn:x"><r:Vertex r:id="SV1"/></r:Root>')
        assert tree.tag == "Root"
        assert tree.children[0].tag == "Vertex"
        assert tree.children[0].get("id") == "SV1"

    def test_malformed_raises(self):
        """Unclosed elements raise MalformedDocument with the source name."""
        with pytest.raises(MalformedDocument) as exc_info:
            decode_document("<Root><Child></Root>", source="broken.xml")
        assert exc_info.value.source == "broken.xml"
        assert "broken.xml" in str(exc_info.value)

    def test_empty_input_raises(self):
        with pytest.raises(MalformedDocument):
            decode_document("")

    def test_deep_nesting(self):
        """Nesting far beyond the recursion limit still decodes."""
        depth = 5000
        tree = decode_document("<R>" + "<a>" * depth + "<leaf id='SV1'/>" + "</a>" * depth + "</R>")
        nodes = list(tree.iter())
        assert len(nodes) == depth + 2
        assert nodes[-1].tag == "leaf"
        assert tree.select_prefixed("SV")[0].tag == "leaf"

    def test_child_order_preserved(self):
        tree = decode_document("<R><a><x/><y/></a><b/><c><z/></c></R>")
        assert [n.tag for n in tree.iter()] == ["R", "a", "x", "y", "b", "c", "z"]

    def test_comments_dropped(self):
        tree = decode_document("<R><!-- note --><a/><?pi data?><b/></R>")
        assert [n.tag for n in tree.children] == ["a", "b"]

    def test_read_document(self, runtime_file):
        tree = read_document(runtime_file)
        assert tree.tag == "ScopeRuntimeStatistics"

    def test_read_malformed_document(self, malformed_file):
        with pytest.raises(MalformedDocument) as exc_info:
            read_document(malformed_file)
        assert exc_info.value.source == str(malformed_file)


class TestXmlNode:
    """Tests for tree navigation helpers."""

    @pytest.fixture
    def tree(self) -> XmlNode:
        return decode_document(
            "<Root>"
            "<Vertex id='SV1_Extract'><Operator opId='op_1'/><Output opId='op_2' rowCount='7'/></Vertex>"
            "<Vertex id='XV9'/>"
            "<SV2_Aggregate><Time elapsedTime='5'/></SV2_Aggregate>"
            "</Root>"
        )

    def test_child_and_children_named(self, tree):
        assert tree.child("Vertex").get("id") == "SV1_Extract"
        assert tree.child("Missing") is None
        assert len(tree.children_named("Vertex")) == 2

    def test_iter_is_document_order(self, tree):
        tags = [node.tag for node in tree.iter()]
        assert tags == ["Root", "Vertex", "Operator", "Output", "Vertex", "SV2_Aggregate", "Time"]

    def test_with_attribute_excludes_self(self, tree):
        vertex = tree.child("Vertex")
        ops = vertex.with_attribute("opId")
        assert [op.get("opId") for op in ops] == ["op_1", "op_2"]

    def test_find_all(self, tree):
        assert len(tree.find_all("Vertex")) == 2

    def test_int_attr(self, tree):
        output = tree.child("Vertex").child("Output")
        assert output.int_attr("rowCount") == 7
        assert output.int_attr("missing") == 0

    def test_select_prefixed_by_id(self, tree):
        nodes = tree.select_prefixed("SV", by=SELECT_BY_ID)
        assert [n.get("id") for n in nodes] == ["SV1_Extract"]

    def test_select_prefixed_by_name(self, tree):
        nodes = tree.select_prefixed("SV", by=SELECT_BY_NAME)
        assert [n.tag for n in nodes] == ["SV2_Aggregate"]

    def test_select_prefixed_unknown_mode(self, tree):
        with pytest.raises(ValueError):
            tree.select_prefixed("SV", by="xpath")

"""
Format codec test suite.

Tests cover decoding and encoding for JSON, INI, XML and CSV plus
extension-based format detection.
"""

import json
import logging

import pytest

from configsync.codecs import CodecRegistry, JsonCodec, detect_format
from configsync.errors import ParseError, SaveError, UnsupportedFormatError
from configsync.models import ConfigSyncSettings, Format


@pytest.fixture
def codecs() -> CodecRegistry:
    return CodecRegistry()


class TestFormatDetection:
    """Test picking a format from a file extension."""

    @pytest.mark.parametrize("path,expected", [
        ("config.json", Format.JSON),
        ("/etc/app/config.ini", Format.INI),
        ("layout.xml", Format.XML),
        ("table.csv", Format.CSV),
        ("UPPER.JSON", Format.JSON),
    ])
    def test_known_extensions(self, path, expected):
        assert detect_format(path) is expected

    @pytest.mark.parametrize("path", ["config.yaml", "config.toml", "config", "config.json.bak"])
    def test_unknown_extensions(self, path):
        """Unknown extensions fail with the extension in the error context."""
        with pytest.raises(UnsupportedFormatError) as exc_info:
            detect_format(path)

        assert exc_info.value.context["file_path"] == path

    def test_registered_extension(self, codecs):
        """New extensions map onto a registered codec without other changes."""
        codecs.register(JsonCodec(codecs.settings), extensions=[".jsonc", ".json"])

        assert codecs.detect("settings.jsonc") is Format.JSON
        assert isinstance(codecs.for_path("settings.JSONC"), JsonCodec)

    def test_registry_has_all_formats(self, codecs):
        assert set(codecs.formats) == {Format.JSON, Format.INI, Format.XML, Format.CSV}


class TestJsonCodec:
    """Test JSON (de)serialization."""

    @pytest.mark.parametrize("document", [
        {},
        {"a": 1, "b": [1, 2.5, "three", None, True, False]},
        {"nested": {"deep": {"deeper": [{"x": "y"}]}}},
        [1, 2, 3],
        "scalar",
        {"unicode": "héllo wörld ✓"},
    ])
    def test_round_trip(self, codecs, document):
        """Any JSON-representable document survives encode then decode."""
        codec = codecs.get(Format.JSON)
        assert codec.decode(codec.encode(document)) == document

    def test_encode_is_indented_utf8(self, codecs):
        data = codecs.get(Format.JSON).encode({"name": "café"})
        assert data == '{\n  "name": "café"\n}\n'.encode("utf-8")

    def test_indent_from_settings(self):
        codecs = CodecRegistry(ConfigSyncSettings(json_indent=4))
        assert codecs.get(Format.JSON).encode({"a": 1}) == b'{\n    "a": 1\n}\n'

    def test_malformed_json(self, codecs):
        with pytest.raises(ParseError) as exc_info:
            codecs.get(Format.JSON).decode(b'{"a": 1,\n "b": }')

        assert exc_info.value.context["format"] == "json"
        assert exc_info.value.context["line_number"] == 2

    def test_invalid_utf8(self, codecs):
        with pytest.raises(ParseError, match="UTF-8"):
            codecs.get(Format.JSON).decode(b'{"a": "\xff"}')

    def test_byte_order_mark_tolerated(self, codecs):
        assert codecs.get(Format.JSON).decode(b'\xef\xbb\xbf{"a": 1}') == {"a": 1}

    def test_unserializable_document(self, codecs):
        with pytest.raises(SaveError):
            codecs.get(Format.JSON).encode({"a": {1, 2}})


class TestIniCodec:
    """Test INI (de)serialization."""

    def test_values_stay_strings(self, codecs):
        """Numbers and booleans are not coerced."""
        doc = codecs.get(Format.INI).decode(b"[server]\nport=8080\ndebug=true\n")
        assert doc == {"server": {"port": "8080", "debug": "true"}}

    def test_keys_keep_case(self, codecs):
        doc = codecs.get(Format.INI).decode(b"[Server]\nmaxConnections = 1000\n")
        assert doc == {"Server": {"maxConnections": "1000"}}

    def test_keys_before_first_section(self, codecs):
        doc = codecs.get(Format.INI).decode(b"name = app\n\n[db]\nhost = x\n")
        assert doc == {"name": "app", "db": {"host": "x"}}

    def test_dotted_sections_nest(self, codecs):
        doc = codecs.get(Format.INI).decode(b"[server]\nport=1\n[server.tls]\ncert=a.pem\n")
        assert doc == {"server": {"port": "1", "tls": {"cert": "a.pem"}}}

    def test_comments_and_blank_values(self, codecs):
        raw = b"; comment\n# another\n[s]\nempty=\nurl = http://host:80/a=b\n"
        doc = codecs.get(Format.INI).decode(raw)
        assert doc == {"s": {"empty": "", "url": "http://host:80/a=b"}}

    def test_default_section_is_ordinary(self, codecs):
        """A [DEFAULT] section does not leak into other sections."""
        doc = codecs.get(Format.INI).decode(b"[DEFAULT]\na=1\n[s]\nb=2\n")
        assert doc == {"DEFAULT": {"a": "1"}, "s": {"b": "2"}}

    def test_malformed_line(self, codecs):
        with pytest.raises(ParseError) as exc_info:
            codecs.get(Format.INI).decode(b"[s]\nkey=value\nnot a pair\n")

        assert exc_info.value.context["line_number"] == 3

    def test_encode_round_trip_as_strings(self, codecs):
        codec = codecs.get(Format.INI)
        document = {
            "name": "app",
            "server": {"port": 8080, "debug": True, "proxy": None},
            "db": {"tls": {"cert": "a.pem"}},
            "empty": {},
        }

        assert codec.decode(codec.encode(document)) == {
            "name": "app",
            "server": {"port": "8080", "debug": "true", "proxy": ""},
            "db": {"tls": {"cert": "a.pem"}},
            "empty": {},
        }

    def test_encode_layout(self, codecs):
        data = codecs.get(Format.INI).encode({"name": "app", "server": {"port": "1"}})
        assert data == b"name = app\n\n[server]\nport = 1\n\n"

    def test_encode_scalar_list_joined(self, codecs):
        """Lists of scalars flatten to comma-separated values."""
        codec = codecs.get(Format.INI)
        data = codec.encode({"i18n": {"locales": ["en", "fr", "de"]}})
        assert codec.decode(data) == {"i18n": {"locales": "en,fr,de"}}

    def test_encode_list_of_mappings_rejected(self, codecs):
        with pytest.raises(SaveError):
            codecs.get(Format.INI).encode({"s": {"items": [{"a": 1}]}})

    def test_encode_non_mapping_root_rejected(self, codecs):
        with pytest.raises(SaveError):
            codecs.get(Format.INI).encode(["a", "b"])


class TestXmlCodec:
    """Test XML (de)serialization."""

    def test_elements_and_attributes(self, codecs):
        raw = b'<config><server port="8080"><host>localhost</host></server></config>'
        assert codecs.get(Format.XML).decode(raw) == {
            "config": {"server": {"@_port": "8080", "host": "localhost"}}
        }

    def test_repeated_children_become_list(self, codecs):
        raw = b"<config><locale>en</locale><locale>fr</locale><locale>de</locale></config>"
        assert codecs.get(Format.XML).decode(raw) == {"config": {"locale": ["en", "fr", "de"]}}

    def test_text_next_to_attributes(self, codecs):
        raw = b'<config><name lang="en">App</name></config>'
        assert codecs.get(Format.XML).decode(raw) == {
            "config": {"name": {"@_lang": "en", "#text": "App"}}
        }

    def test_empty_element_is_empty_string(self, codecs):
        assert codecs.get(Format.XML).decode(b"<config><flag/></config>") == {"config": {"flag": ""}}

    def test_entities_expanded(self, codecs):
        raw = (
            b'<?xml version="1.0"?>\n'
            b'<!DOCTYPE config [<!ENTITY env "production">]>\n'
            b"<config><mode>&env;</mode><pair>a &amp; b</pair></config>"
        )
        assert codecs.get(Format.XML).decode(raw) == {"config": {"mode": "production", "pair": "a & b"}}

    def test_comments_dropped(self, codecs):
        raw = b"<config><!-- note --><a>1</a></config>"
        assert codecs.get(Format.XML).decode(raw) == {"config": {"a": "1"}}

    def test_custom_markers(self):
        codecs = CodecRegistry(ConfigSyncSettings(xml_attribute_prefix="$", xml_text_key="_text"))
        raw = b'<config><name lang="en">App</name></config>'
        assert codecs.get(Format.XML).decode(raw) == {"config": {"name": {"$lang": "en", "_text": "App"}}}

    @pytest.mark.parametrize("raw", [
        b"<config><a></config>",
        b"not xml at all",
        b"",
        b"<config>&undefined;</config>",
    ])
    def test_malformed_xml(self, codecs, raw):
        with pytest.raises(ParseError):
            codecs.get(Format.XML).decode(raw)

    def test_round_trip(self, codecs):
        codec = codecs.get(Format.XML)
        document = {
            "config": {
                "@_version": "2",
                "server": {"@_port": "8080", "host": "localhost"},
                "locale": ["en", "fr"],
                "name": {"@_lang": "en", "#text": "App"},
                "nested": {"deep": {"deeper": "x"}},
            }
        }
        assert codec.decode(codec.encode(document)) == document

    def test_namespaces_round_trip(self, codecs):
        codec = codecs.get(Format.XML)
        raw = b'<c:config xmlns:c="urn:example"><c:item>1</c:item></c:config>'

        document = codec.decode(raw)

        assert document == {"c:config": {"@_xmlns:c": "urn:example", "c:item": "1"}}
        assert codec.decode(codec.encode(document)) == document

    def test_encode_writes_declaration(self, codecs):
        data = codecs.get(Format.XML).encode({"config": {"port": 8080, "debug": True}})

        assert data.startswith(b"<?xml")
        assert codecs.get(Format.XML).decode(data) == {"config": {"port": "8080", "debug": "true"}}

    @pytest.mark.parametrize("document", [
        {},
        {"a": "1", "b": "2"},
        {"config": ["x", "y"]},
        "scalar",
    ])
    def test_encode_needs_single_root(self, codecs, document):
        with pytest.raises(SaveError):
            codecs.get(Format.XML).encode(document)

    def test_encode_invalid_tag(self, codecs):
        with pytest.raises(SaveError):
            codecs.get(Format.XML).encode({"config": {"has space": "x"}})

    def test_encode_undeclared_prefix(self, codecs):
        with pytest.raises(SaveError, match="undeclared namespace"):
            codecs.get(Format.XML).encode({"x:config": "1"})


class TestCsvCodec:
    """Test CSV (de)serialization and the two-column heuristic."""

    def test_two_columns_become_mapping(self, codecs):
        doc = codecs.get(Format.CSV).decode(b"key,value\nport,8080\nhost,localhost\n")
        assert doc == {"port": "8080", "host": "localhost"}

    def test_two_column_table_is_read_as_mapping(self, codecs):
        """Any two-column file is taken as key/value, whatever its headers."""
        doc = codecs.get(Format.CSV).decode(b"name,email\nada,ada@example.com\n")
        assert doc == {"ada": "ada@example.com"}

    def test_other_widths_become_records(self, codecs):
        doc = codecs.get(Format.CSV).decode(b"name,port,host\napi,80,a\nweb,443,b\n")
        assert doc == {"records": [
            {"name": "api", "port": "80", "host": "a"},
            {"name": "web", "port": "443", "host": "b"},
        ]}

    def test_header_only(self, codecs):
        assert codecs.get(Format.CSV).decode(b"key,value\n") == {"records": []}

    def test_empty_file(self, codecs):
        assert codecs.get(Format.CSV).decode(b"") == {"records": []}

    def test_quoted_fields(self, codecs):
        doc = codecs.get(Format.CSV).decode(b'key,value\nhosts,"a,b,c"\nquote,"say ""hi"""\n')
        assert doc == {"hosts": "a,b,c", "quote": 'say "hi"'}

    def test_crlf_and_blank_lines(self, codecs):
        doc = codecs.get(Format.CSV).decode(b"key,value\r\nport,1\r\n\r\nhost,x\r\n")
        assert doc == {"port": "1", "host": "x"}

    def test_ragged_row(self, codecs):
        with pytest.raises(ParseError) as exc_info:
            codecs.get(Format.CSV).decode(b"a,b,c\n1,2,3\n4,5\n")

        assert exc_info.value.context["line_number"] == 3

    def test_encode_flat_mapping(self, codecs):
        data = codecs.get(Format.CSV).encode({"port": 8080, "host": "localhost", "debug": False})
        assert data == b"key,value\nport,8080\nhost,localhost\ndebug,false\n"

    def test_encode_flat_mapping_custom_headers(self):
        codecs = CodecRegistry(ConfigSyncSettings(csv_key_header="name", csv_value_header="setting"))
        assert codecs.get(Format.CSV).encode({"a": "1"}) == b"name,setting\na,1\n"

    def test_encode_records(self, codecs):
        """Columns are the union of record keys in first-seen order."""
        data = codecs.get(Format.CSV).encode({"records": [{"a": 1, "b": "x"}, {"c": True}]})
        assert data == b"a,b,c\n1,x,\n,,true\n"

    def test_records_round_trip(self, codecs):
        codec = codecs.get(Format.CSV)
        document = {"records": [{"a": "1", "b": "2", "c": "3"}, {"a": "4", "b": "5", "c": "6"}]}
        assert codec.decode(codec.encode(document)) == document

    def test_encode_records_drops_other_keys(self, codecs, caplog):
        with caplog.at_level(logging.WARNING):
            data = codecs.get(Format.CSV).encode({"records": [{"a": "1"}], "meta": {"x": 1}})

        assert data == b"a\n1\n"
        assert "meta" in caplog.text

    @pytest.mark.parametrize("document", [
        {"server": {"port": 1}},
        {"records": [{"nested": {"x": 1}}]},
        {"records": ["not a mapping"]},
        ["a", "b"],
        "scalar",
    ])
    def test_encode_unsupported_structure(self, codecs, document):
        with pytest.raises(SaveError):
            codecs.get(Format.CSV).encode(document)


def test_formats_convert_through_json(codecs):
    """An INI document can be written as JSON text."""
    doc = codecs.get(Format.INI).decode(b"[server]\nport=8080\n")
    assert json.loads(codecs.get(Format.JSON).encode(doc)) == {"server": {"port": "8080"}}

"""
XML codec.

The document is ``{root_tag: content}``. Element content is either a string
(leaf text) or a mapping of child tag to content; attributes are stored under
the attribute prefix (``@_id``), text next to attributes or children under the
text key (``#text``), and repeated child elements become lists.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from lxml import etree

from ..errors import ParseError, SaveError
from ..models import Format
from .base import Codec, is_scalar, scalar_text

logger = logging.getLogger(__name__)

XML_NS = "http://www.w3.org/XML/1998/namespace"


class XmlCodec(Codec):
    """XML files via lxml, with internal entities expanded."""

    format = Format.XML

    def _parser(self) -> etree.XMLParser:
        return etree.XMLParser(
            resolve_entities="internal",
            load_dtd=False,
            no_network=True,
            remove_comments=True,
            remove_pis=True,
        )

    def decode(self, raw: bytes) -> Dict[str, Any]:
        try:
            root = etree.fromstring(raw, self._parser())
        except etree.XMLSyntaxError as e:
            raise ParseError(self.format.value, e.msg or str(e), line_number=e.lineno) from e
        except ValueError as e:
            raise ParseError(self.format.value, str(e)) from e

        return {self._name(root, root.tag): self._content(root, {})}

    def _content(self, element: etree._Element, parent_nsmap: Dict[Optional[str], str]) -> Any:
        prefix = self.settings.xml_attribute_prefix
        result: Dict[str, Any] = {}

        for ns_prefix, uri in element.nsmap.items():
            if parent_nsmap.get(ns_prefix) != uri:
                result[f"{prefix}xmlns:{ns_prefix}" if ns_prefix else f"{prefix}xmlns"] = uri

        for name, value in element.attrib.items():
            result[prefix + self._name(element, name)] = value

        text_parts = [element.text or ""]
        for child in element:
            text_parts.append(child.tail or "")
            if not isinstance(child.tag, str):
                continue
            key = self._name(child, child.tag)
            value = self._content(child, element.nsmap)
            if key not in result:
                result[key] = value
            elif isinstance(result[key], list):
                result[key].append(value)
            else:
                result[key] = [result[key], value]

        text = "".join(text_parts).strip()
        if not result:
            return text
        if text:
            result[self.settings.xml_text_key] = text
        return result

    def _name(self, element: etree._Element, name: str) -> str:
        """Turn a Clark-notation name back into ``prefix:local``."""
        if not name.startswith("{"):
            return name
        uri, local = name[1:].split("}", 1)
        if uri == XML_NS:
            return f"xml:{local}"
        for ns_prefix, ns_uri in element.nsmap.items():
            if ns_uri == uri and ns_prefix:
                return f"{ns_prefix}:{local}"
        return local

    def encode(self, document: Any) -> bytes:
        if not isinstance(document, dict) or len(document) != 1:
            count = len(document) if isinstance(document, dict) else type(document).__name__
            raise SaveError(
                f"xml documents need exactly one root element, got {count}",
                suggestion="Wrap the document in a single top-level key"
            )

        (tag, content), = document.items()
        if isinstance(content, list):
            raise SaveError(f"xml root <{tag}> cannot repeat")

        try:
            root = self._build(None, tag, content, {"xml": XML_NS})
        except ValueError as e:
            raise SaveError(f"cannot build xml: {e}") from e

        return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)

    def _build(
        self,
        parent: Optional[etree._Element],
        tag: str,
        content: Any,
        scope: Dict[Optional[str], str]
    ) -> etree._Element:
        prefix = self.settings.xml_attribute_prefix
        declared: Dict[Optional[str], str] = {}
        attributes: List[Tuple[str, str]] = []
        children: List[Tuple[str, Any]] = []
        text: Optional[str] = None

        if isinstance(content, dict):
            for key, value in content.items():
                if key == self.settings.xml_text_key:
                    text = scalar_text(value)
                elif key.startswith(prefix):
                    name = key[len(prefix):]
                    if not is_scalar(value):
                        raise SaveError(f"attribute {name!r} of <{tag}> must be a scalar")
                    if name == "xmlns":
                        declared[None] = scalar_text(value)
                    elif name.startswith("xmlns:"):
                        declared[name[len("xmlns:"):]] = scalar_text(value)
                    else:
                        attributes.append((name, scalar_text(value)))
                else:
                    children.append((key, value))
        elif is_scalar(content):
            text = scalar_text(content)
        else:
            raise SaveError(f"<{tag}> cannot hold nested lists")

        scope = {**scope, **declared}
        qualified = self._qualify(tag, scope, attribute=False)
        if parent is None:
            element = etree.Element(qualified, nsmap=declared or None)
        else:
            element = etree.SubElement(parent, qualified, nsmap=declared or None)

        for name, value in attributes:
            element.set(self._qualify(name, scope, attribute=True), value)
        if text:
            element.text = text

        for key, value in children:
            for item in value if isinstance(value, list) else [value]:
                self._build(element, key, item, scope)

        return element

    def _qualify(self, name: str, scope: Dict[Optional[str], str], attribute: bool) -> str:
        """Turn ``prefix:local`` into Clark notation using the namespaces in scope."""
        if ":" in name:
            ns_prefix, local = name.split(":", 1)
            uri = scope.get(ns_prefix)
            if uri is None:
                raise SaveError(f"undeclared namespace prefix {ns_prefix!r} in {name!r}")
            return f"{{{uri}}}{local}"
        # Unprefixed attributes never take the default namespace.
        if not attribute and scope.get(None):
            return f"{{{scope[None]}}}{name}"
        return name

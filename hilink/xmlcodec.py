"""XML request building and response parsing for the HiLink api.

Requests are flat documents::

    <?xml version="1.0" encoding="UTF-8"?><request><username>admin</username></request>

Responses are either a ``<response>`` document or an error document::

    <?xml version="1.0" encoding="UTF-8"?><error><code>108006</code><message/></error>
"""

from __future__ import annotations

from typing import Any
from xml.etree.ElementTree import Element, ParseError, SubElement, tostring

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring

from .exceptions import ProtocolError

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


def build_request(**fields: Any) -> str:
    """Return a request document with one element per field, in order."""
    root = Element("request")
    for tag, value in fields.items():
        SubElement(root, tag).text = str(value)
    return XML_DECLARATION + tostring(root, encoding="unicode")


def parse(text: str) -> Element:
    """Parse a response document, refusing entity and DTD tricks."""
    try:
        return fromstring(text.strip())
    except (ParseError, DefusedXmlException) as ex:
        raise ProtocolError(f"Unable to parse xml response: {ex}: {text!r}") from ex


def find_text(root: Element, tag: str) -> str | None:
    """Return the stripped text of the first element named tag, or None."""
    element = root if root.tag == tag else root.find(f".//{tag}")
    if element is None:
        return None
    return (element.text or "").strip()


def error_code(root: Element) -> int | None:
    """Return the device error code if the document reports an error."""
    error = root if root.tag == "error" else root.find("error")
    if error is None:
        return None
    code = find_text(error, "code")
    if not code:
        raise ProtocolError("Error response without an error code")
    try:
        return int(code)
    except ValueError as ex:
        raise ProtocolError(f"Error response with invalid code {code!r}") from ex

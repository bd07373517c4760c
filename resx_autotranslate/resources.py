"""Loading, merging and saving .resx resource documents.

A .resx file is an XML document whose translatable content lives in
``<data name="Key"><value>Text</value></data>`` nodes directly under ``<root>``.
Everything else (schema, ``resheader`` nodes, comments, attributes) is carried
through untouched, together with the on-disk encoding, BOM and newline style.
"""

from __future__ import annotations

import codecs
import copy
import io
import logging
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import MalformedDocument, PersistenceFailure

XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"

# Keep the usual resx schema prefixes instead of ElementTree's ns0/ns1.
ET.register_namespace("xsd", "http://www.w3.org/2001/XMLSchema")
ET.register_namespace("msdata", "urn:schemas-microsoft-com:xml-msdata")

_KNOWN_BOMS = (b"\xff\xfe", b"\xfe\xff", b"\xef\xbb\xbf")


@dataclass(frozen=True)
class DocumentFormat:
    encoding: str
    newline: str
    xml_declaration: bool
    bom: Optional[bytes]


DEFAULT_FORMAT = DocumentFormat(encoding="utf-8", newline="\n", xml_declaration=True, bom=None)


@dataclass(frozen=True)
class ResourceEntry:
    key: str
    text: str
    preserve_whitespace: bool = False
    # False for binary/file resources (``type`` or ``mimetype`` attribute).
    is_text: bool = True


class CommentedTreeBuilder(ET.TreeBuilder):
    """TreeBuilder that preserves XML comments while parsing."""

    def comment(self, data):
        self.start(ET.Comment, {})
        self.data(data)
        self.end(ET.Comment)


def decode_auto(raw: bytes) -> Tuple[str, str, Optional[bytes]]:
    if raw.startswith(b"\xff\xfe"):
        return raw[2:].decode("utf-16-le"), "utf-16-le", b"\xff\xfe"
    if raw.startswith(b"\xfe\xff"):
        return raw[2:].decode("utf-16-be"), "utf-16-be", b"\xfe\xff"
    if raw.startswith(b"\xef\xbb\xbf"):
        return raw[3:].decode("utf-8"), "utf-8", b"\xef\xbb\xbf"
    return raw.decode("utf-8"), "utf-8", None


def detect_declared_encoding(content: str) -> Optional[str]:
    match = re.search(r"<\?xml[^>]*encoding=['\"]([^'\"]+)['\"]", content, re.IGNORECASE)
    if match:
        return match.group(1).lower()
    return None


def has_xml_declaration(content: str) -> bool:
    stripped = content.lstrip("\ufeff \t\r\n")
    return stripped.startswith("<?xml")


def detect_newline(content: str) -> str:
    return "\r\n" if "\r\n" in content else "\n"


def _tag_name(tag: object) -> str:
    # Comments carry a function as their tag.
    if not isinstance(tag, str):
        return ""
    return tag.split("}")[-1]


def _entry_from_element(elem: ET.Element) -> ResourceEntry:
    value = elem.find("value")
    text = value.text if value is not None and value.text is not None else ""
    return ResourceEntry(
        key=elem.attrib["name"],
        text=text,
        preserve_whitespace=elem.attrib.get(XML_SPACE) == "preserve",
        is_text=not ("type" in elem.attrib or "mimetype" in elem.attrib),
    )


class ResourceDocument:
    """A parsed .resx file plus the formatting needed to write it back."""

    def __init__(
        self,
        path: Path,
        tree: ET.ElementTree,
        fmt: DocumentFormat = DEFAULT_FORMAT,
        exists: bool = True,
    ) -> None:
        self.path = Path(path)
        self.tree = tree
        self.fmt = fmt
        self.exists = exists

    @classmethod
    def empty(cls, path: Path) -> "ResourceDocument":
        root = ET.Element("root")
        return cls(path, ET.ElementTree(root), DEFAULT_FORMAT, exists=False)

    @classmethod
    def seeded_from(cls, reference: "ResourceDocument", path: Path) -> "ResourceDocument":
        """Structural copy of ``reference``: same schema and headers, no entries."""
        root = copy.deepcopy(reference.tree.getroot())
        children = list(root)
        closing_tail = children[-1].tail if children else None
        for child in children:
            if _tag_name(child.tag) == "data":
                root.remove(child)
        remaining = list(root)
        if remaining:
            remaining[-1].tail = closing_tail
        return cls(path, ET.ElementTree(root), reference.fmt, exists=False)

    @property
    def root(self) -> ET.Element:
        return self.tree.getroot()

    def _data_elements(self) -> Iterator[ET.Element]:
        for child in self.root:
            if _tag_name(child.tag) == "data" and "name" in child.attrib:
                yield child

    def data_index(self) -> Dict[str, ET.Element]:
        index: Dict[str, ET.Element] = {}
        for elem in self._data_elements():
            index.setdefault(elem.attrib["name"], elem)
        return index

    def entries(self) -> Iterator[ResourceEntry]:
        seen = set()
        for elem in self._data_elements():
            key = elem.attrib["name"]
            if key in seen:
                continue
            seen.add(key)
            yield _entry_from_element(elem)

    def get(self, key: str) -> Optional[ResourceEntry]:
        elem = self.data_index().get(key)
        return _entry_from_element(elem) if elem is not None else None

    def keys(self) -> List[str]:
        return [entry.key for entry in self.entries()]

    def as_dict(self) -> Dict[str, str]:
        return {entry.key: entry.text for entry in self.entries()}

    def copy(self) -> "ResourceDocument":
        return ResourceDocument(
            self.path,
            ET.ElementTree(copy.deepcopy(self.root)),
            self.fmt,
            exists=self.exists,
        )

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self.data_index()

    def __len__(self) -> int:
        return sum(1 for _ in self.entries())

    def __repr__(self) -> str:
        return f"ResourceDocument({str(self.path)!r}, entries={len(self)})"


def parse_document(raw: bytes, path: Path) -> ResourceDocument:
    try:
        content, detected_encoding, bom = decode_auto(raw)
        declared = detect_declared_encoding(content)
        parser = ET.XMLParser(target=CommentedTreeBuilder())
        root = ET.fromstring(content, parser=parser)
    except (ET.ParseError, UnicodeDecodeError, ValueError) as exc:
        raise MalformedDocument(f"{path}: {exc}") from exc

    if _tag_name(root.tag) != "root":
        raise MalformedDocument(f"{path}: expected <root> element, found <{root.tag}>")

    fmt = DocumentFormat(
        encoding=declared if declared else detected_encoding,
        newline=detect_newline(content),
        xml_declaration=has_xml_declaration(content),
        bom=bom,
    )
    try:
        codecs.lookup(resolve_write_encoding(fmt))
    except LookupError as exc:
        raise MalformedDocument(f"{path}: unsupported encoding {fmt.encoding!r}") from exc

    document = ResourceDocument(path, ET.ElementTree(root), fmt)

    names = [elem.attrib["name"] for elem in document._data_elements()]
    if len(names) != len(set(names)):
        logging.warning("%s: duplicate resource keys found; the first occurrence wins.", path)
    return document


def load_document(path: Path, missing_ok: bool = False) -> ResourceDocument:
    """Load a .resx file.

    With ``missing_ok`` a nonexistent file yields an empty document flagged as
    not yet existing, which is how target-language files are opened.
    """
    path = Path(path)
    if missing_ok and not path.exists():
        return ResourceDocument.empty(path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise MalformedDocument(f"{path}: {exc}") from exc
    return parse_document(raw, path)


def _new_data_element(root: ET.Element, key: str, text: str, preserve: bool) -> ET.Element:
    children = list(root)
    indent = root.text if root.text and not root.text.strip() else "\n  "
    if not children:
        root.text = indent

    elem = ET.Element("data", {"name": key})
    if preserve:
        elem.set(XML_SPACE, "preserve")
    elem.text = indent + "  "
    value = ET.SubElement(elem, "value")
    value.text = text
    value.tail = indent

    if children:
        last = children[-1]
        elem.tail = last.tail
        last.tail = indent
    else:
        elem.tail = "\n"
    root.append(elem)
    return elem


def merge(
    target: ResourceDocument,
    updates: Mapping[str, str],
    reference: Optional[ResourceDocument] = None,
) -> ResourceDocument:
    """Return a copy of ``target`` with ``updates`` applied.

    Existing entries keep their position and attributes and only get their
    value replaced; new keys are appended in ``updates`` order. A target that
    does not exist on disk yet is first seeded from ``reference``.
    """
    if not target.exists and reference is not None:
        merged = ResourceDocument.seeded_from(reference, target.path)
    else:
        merged = target.copy()

    index = merged.data_index()
    reference_index = reference.data_index() if reference is not None else {}
    for key, text in updates.items():
        elem = index.get(key)
        if elem is None:
            ref_elem = reference_index.get(key)
            preserve = ref_elem.attrib.get(XML_SPACE) == "preserve" if ref_elem is not None else True
            index[key] = _new_data_element(merged.root, key, text, preserve)
            continue
        value = elem.find("value")
        if value is None:
            value = ET.SubElement(elem, "value")
        value.text = text
    return merged


def strip_known_bom(data: bytes) -> Tuple[bytes, Optional[bytes]]:
    for bom in _KNOWN_BOMS:
        if data.startswith(bom):
            return data[len(bom):], bom
    return data, None


def resolve_write_encoding(fmt: DocumentFormat) -> str:
    encoding_lower = fmt.encoding.lower()
    if fmt.bom == b"\xff\xfe":
        return "utf-16-le"
    if fmt.bom == b"\xfe\xff":
        return "utf-16-be"
    if fmt.bom == b"\xef\xbb\xbf":
        return "utf-8"
    if encoding_lower == "utf-8-sig":
        return "utf-8"
    if encoding_lower == "utf-16":
        return "utf-16-le"
    return fmt.encoding


def serialize_document(document: ResourceDocument) -> bytes:
    fmt = document.fmt
    write_encoding = resolve_write_encoding(fmt)
    buffer = io.BytesIO()
    try:
        document.tree.write(
            buffer,
            encoding=fmt.encoding,
            xml_declaration=fmt.xml_declaration,
            short_empty_elements=False,
        )
        serialized_bytes, _ = strip_known_bom(buffer.getvalue())
        serialized_text = serialized_bytes.decode(write_encoding, errors="replace")
        if fmt.newline != "\n":
            serialized_text = serialized_text.replace("\n", fmt.newline)
        if not serialized_text.endswith(fmt.newline):
            serialized_text += fmt.newline
        encoded = serialized_text.encode(write_encoding)
    except (LookupError, UnicodeError) as exc:
        raise PersistenceFailure(f"Could not encode {document.path} as {fmt.encoding}: {exc}") from exc

    if fmt.bom:
        encoded = fmt.bom + encoded
    return encoded


def atomic_write(data: bytes, output: Path) -> None:
    temp_path = output.with_name(output.name + ".tmp")
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        with temp_path.open("wb") as fp:
            fp.write(data)
            fp.flush()
            os.fsync(fp.fileno())
        os.replace(temp_path, output)
    except OSError as exc:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as cleanup_exc:
            logging.warning("Could not remove temporary file %s: %s", temp_path, cleanup_exc)
        raise PersistenceFailure(f"Could not write {output}: {exc}") from exc


def save_document(document: ResourceDocument) -> None:
    """Write ``document`` to its path without ever exposing a partial file."""
    atomic_write(serialize_document(document), document.path)
    document.exists = True

"""Flat ``<xml>`` documents exchanged with the merchant gateway.

A document is one level deep and its field names are unique::

    <xml>
      <appid>wxd930ea5d5a258f4f</appid>
      <mch_id>10000100</mch_id>
    </xml>

Uniqueness is required by the signing algorithm: with two ``<a>`` fields
there is no way to tell whether ``a=x&a=y`` or ``a=y&a=x`` was signed.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .errors import DuplicateFieldError, MalformedDocumentError

ROOT_TAG = "xml"


def unique_fields(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for name, value in pairs:
        if name in out:
            raise DuplicateFieldError(name)
        out[name] = value
    return out


def _local_name(tag: str) -> str:
    return tag.rpartition("}")[2]


def _element_text(el: ET.Element) -> str:
    # character data of the element itself; nested elements are skipped
    # but the text around them is kept
    parts = [el.text or ""]
    for child in el:
        parts.append(child.tail or "")
    return "".join(parts)


class Document:
    def __init__(self, fields: Optional[Union[Mapping[str, str], Iterable[Tuple[str, str]]]] = None):
        self._fields: Dict[str, str] = {}
        if fields is None:
            return
        if isinstance(fields, Document):
            pairs: Iterable[Tuple[str, str]] = fields.fields()
        elif isinstance(fields, Mapping):
            pairs = fields.items()
        else:
            pairs = fields
        self._fields = unique_fields((str(k), str(v)) for k, v in pairs)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Document":
        return cls(mapping)

    @classmethod
    def parse(cls, data: Union[bytes, str]) -> "Document":
        try:
            root = ET.fromstring(data)
        except ET.ParseError as exc:
            raise MalformedDocumentError(f"invalid xml: {exc}") from exc
        if _local_name(root.tag) != ROOT_TAG:
            raise MalformedDocumentError(f"expect <{ROOT_TAG}> as top element but got <{_local_name(root.tag)}>")
        doc = cls()
        doc._fields = unique_fields((_local_name(child.tag), _element_text(child)) for child in root)
        return doc

    def encode(self) -> bytes:
        root = ET.Element(ROOT_TAG)
        for name, value in self._fields.items():
            ET.SubElement(root, name).text = value
        # a literal CR would be normalized to LF by the receiving parser
        text = ET.tostring(root, encoding="unicode").replace("\r", "&#xD;")
        return text.encode("utf-8")

    def set(self, name: str, value: str) -> None:
        self._fields[name] = value

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._fields.get(name, default)

    def get_int(self, name: str) -> Optional[int]:
        """Return the field as an int, or None when it is absent or empty.

        A legitimate ``0`` and a missing field are different answers; callers
        that need the distinction must test for ``None``.
        """
        raw = self._fields.get(name, "")
        if raw == "":
            return None
        try:
            return int(raw, 10)
        except ValueError as exc:
            raise MalformedDocumentError(f"field <{name}> is not an integer: {raw!r}") from exc

    def fields(self) -> List[Tuple[str, str]]:
        return list(self._fields.items())

    def to_dict(self) -> Dict[str, str]:
        return dict(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __getitem__(self, name: str) -> str:
        return self._fields[name]

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Document):
            return self._fields == other._fields
        if isinstance(other, Mapping):
            return self._fields == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Document({self._fields!r})"

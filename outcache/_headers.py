from __future__ import annotations

from typing import Any, Iterator, List, Mapping, MutableMapping, Optional, Union

__all__ = ("Headers", "parse_entity_tags", "if_none_match_satisfied")


def is_qd_text(c: str) -> bool:
    r"""
    Check if character is valid in quoted-text.

    Per RFC 7230 Section 3.2.6:
    qdtext = HTAB / SP / %x21 / %x23-5B / %x5D-7E / obs-text
    """
    if not c:
        return False
    b = ord(c)
    return b == 0x09 or b == 0x20 or b == 0x21 or (0x23 <= b <= 0x5B) or (0x5D <= b <= 0x7E) or b >= 0x80


def http_unquote(raw: str) -> tuple[int, str]:
    r"""
    Unquote the HTTP quoted-string at the start of ``raw``.

    Returns:
        Tuple of (eaten, result) where ``eaten`` is the number of characters
        consumed, or -1 when ``raw`` does not start with a well-formed quoted-string.

    Examples:
        >>> http_unquote('"abc", "def"')
        (5, 'abc')
        >>> http_unquote('"hello\\"world"')
        (14, 'hello"world')
        >>> http_unquote('"open')
        (-1, '')
    """
    if not raw or raw[0] != '"':
        return -1, ""

    buf: list[str] = []
    i = 1

    while i < len(raw):
        c = raw[i]

        if c == '"':
            return i + 1, "".join(buf)

        if c == "\\":
            if i + 1 >= len(raw):
                return -1, ""
            buf.append(raw[i + 1])
            i += 2
            continue

        buf.append(c if is_qd_text(c) else "?")
        i += 1

    return -1, ""


def parse_entity_tags(value: str) -> List[str]:
    """
    Parse the value of an ``If-None-Match``/``If-Match`` header.

    Weak validators lose their ``W/`` prefix, since a weak comparison is used
    for conditional GETs. ``*`` is returned as is. Malformed members are skipped.

    Examples:
        >>> parse_entity_tags('"abc", W/"def"')
        ['abc', 'def']
        >>> parse_entity_tags("*")
        ['*']
    """
    tags: List[str] = []
    rest = value.strip()

    while rest:
        if rest.startswith(","):
            rest = rest[1:].lstrip()
            continue

        if rest.startswith("*"):
            tags.append("*")
            rest = rest[1:].lstrip()
            continue

        if rest.startswith("W/"):
            rest = rest[2:]

        eaten, tag = http_unquote(rest)
        if eaten == -1:
            # unquoted garbage, skip to the next member
            _, _, rest = rest.partition(",")
            rest = rest.lstrip()
            continue

        tags.append(tag)
        rest = rest[eaten:].lstrip()

    return tags


def if_none_match_satisfied(header_values: Optional[List[str]], fingerprint: Optional[str]) -> bool:
    """Whether a stored fingerprint matches one of the ``If-None-Match`` header values."""
    if not header_values or fingerprint is None:
        return False

    for header_value in header_values:
        for tag in parse_entity_tags(header_value):
            if tag == "*" or tag == fingerprint:
                return True
    return False


class Headers(MutableMapping[str, str]):
    """Case-insensitive, multi-valued header mapping."""

    def __init__(self, headers: Optional[Mapping[str, Union[str, List[str]]]] = None) -> None:
        self._headers = {k.lower(): ([v] if isinstance(v, str) else v[:]) for k, v in (headers or {}).items()}

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(key.lower(), None)

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers

"""
Reads and writes the ``.properties`` format extractors consume.

Output follows the classic Java layout: ISO-8859-1, a comment header, a date
header, then one escaped ``key=value`` line per entry. Characters outside
printable ASCII are written as ``\\uXXXX`` escapes.
"""
from datetime import datetime
from typing import Dict, IO, Mapping, Optional

ENCODING = "iso-8859-1"

_SPECIAL_ESCAPES = {"\t": "\\t", "\n": "\\n", "\r": "\\r", "\f": "\\f"}
_UNESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def _escape(text: str, is_key: bool) -> str:
    out = []
    for index, char in enumerate(text):
        if char == " ":
            out.append("\\ " if (is_key or index == 0) else " ")
        elif char in _SPECIAL_ESCAPES:
            out.append(_SPECIAL_ESCAPES[char])
        elif char in "\\=:#!":
            out.append("\\" + char)
        elif ord(char) < 0x20 or ord(char) > 0x7e:
            # Astral characters become surrogate pairs, like Java strings
            for unit in _utf16_units(char):
                out.append(f"\\u{unit:04X}")
        else:
            out.append(char)
    return "".join(out)


def _utf16_units(char: str):
    code = ord(char)
    if code <= 0xFFFF:
        return [code]
    code -= 0x10000
    return [0xD800 + (code >> 10), 0xDC00 + (code & 0x3FF)]


def _escape_comment(comment: str) -> str:
    lines = comment.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return "\n".join("#" + _escape_non_latin(line) for line in lines)


def _escape_non_latin(text: str) -> str:
    return "".join(char if ord(char) <= 0xFF else "".join(f"\\u{u:04X}" for u in _utf16_units(char))
                   for char in text)


def format_properties(properties: Mapping[str, str], comment: Optional[str] = "",
                      now: Optional[datetime] = None) -> str:
    lines = []
    if comment is not None:
        lines.append(_escape_comment(comment))
    now = now or datetime.now().astimezone()
    lines.append("#" + now.strftime("%a %b %d %H:%M:%S %Z %Y"))
    for key, value in properties.items():
        lines.append(f"{_escape(key, True)}={_escape(value, False)}")
    return "\n".join(lines) + "\n"


def store_properties(properties: Mapping[str, str], stream: IO[bytes], comment: Optional[str] = "",
                     now: Optional[datetime] = None):
    """Writes ``properties`` to a binary stream, ISO-8859-1 encoded."""
    stream.write(format_properties(properties, comment, now).encode(ENCODING))


def _logical_lines(text: str):
    physical = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    buffer = ""
    for line in physical:
        stripped = line.lstrip(" \t\f")
        if not buffer and (not stripped or stripped[0] in "#!"):
            continue
        buffer += stripped
        trailing = len(buffer) - len(buffer.rstrip("\\"))
        if trailing % 2 == 1:
            buffer = buffer[:-1]
            continue
        yield buffer
        buffer = ""
    if buffer:
        yield buffer


def _unescape(text: str) -> str:
    out = []
    index = 0
    while index < len(text):
        char = text[index]
        if char != "\\" or index + 1 >= len(text):
            out.append(char)
            index += 1
            continue
        nxt = text[index + 1]
        if nxt == "u" and index + 6 <= len(text):
            out.append(chr(int(text[index + 2:index + 6], 16)))
            index += 6
            continue
        out.append(_UNESCAPES.get(nxt, nxt))
        index += 2
    # Rejoin surrogate pairs written for astral characters
    return "".join(out).encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def _split_key_value(line: str):
    index = 0
    while index < len(line):
        char = line[index]
        if char == "\\":
            index += 2
            continue
        if char in "=: \t\f":
            break
        index += 1
    key = line[:index]
    rest = line[index:].lstrip(" \t\f")
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(" \t\f")
    return key, rest


def parse_properties(text: str) -> Dict[str, str]:
    properties = {}
    for line in _logical_lines(text):
        key, value = _split_key_value(line)
        properties[_unescape(key)] = _unescape(value)
    return properties


def load_properties(stream: IO[bytes]) -> Dict[str, str]:
    return parse_properties(stream.read().decode(ENCODING))

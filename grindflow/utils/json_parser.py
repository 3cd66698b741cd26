"""Recovery of structured payloads from free-form model output.

Models are asked for strict JSON but regularly wrap it in code fences,
surround it with prose, leave raw newlines inside string values or stop
mid-object. ``repair_json_response`` works through progressively looser
strategies and always hands back a payload that matches the schema:

1. strip code fences and parse as-is;
2. cut the first balanced ``{...}`` object and re-escape string values;
3. pull the known fields out one by one with regular expressions;
4. fall back to the schema placeholder.
"""

import json
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from grindflow.schemas.llm_outputs import ResponseSchema
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

_FENCE_OPEN = re.compile(r"^```(?:json)?[ \t]*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"[ \t]*```$")
_VALID_ESCAPES = frozenset('"\\/bfnrtu')
_HEX4 = re.compile(r"[0-9a-fA-F]{4}")
_ESCAPED_CHAR = re.compile(r'\\(["\\/bfnrt])')
_QUOTED_STRING = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)
_UNESCAPES = {'"': '"', "\\": "\\", "/": "/", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t"}
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    cleaned = (text or "").strip()
    cleaned = _FENCE_OPEN.sub("", cleaned)
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned.strip()


def find_json_object_bounds(text: str, start: int = 0) -> Optional[Tuple[int, int]]:
    """Locate the first balanced ``{...}`` object at or after ``start``.

    Braces inside string literals are ignored.

    Args:
        text: Text to scan
        start: Offset to start scanning from

    Returns:
        ``(begin, end)`` slice indices of the object, or None when there is
        no opening brace or the object never closes
    """
    open_brace = text.find("{", start)
    if open_brace == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False
    for index in range(open_brace, len(text)):
        char = text[index]

        if escape_next:
            escape_next = False
            continue
        if in_string and char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return open_brace, index + 1

    return None


def _find_closing_bracket(text: str, start: int) -> int:
    """Index of the ``]`` closing an array whose body starts at ``start``."""
    depth = 1
    in_string = False
    escape_next = False
    for index in range(start, len(text)):
        char = text[index]

        if escape_next:
            escape_next = False
            continue
        if in_string and char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return index

    return len(text)


def escape_string_content(content: str) -> str:
    """Escape the raw content of a JSON string value.

    Valid escape sequences are kept. Lone backslashes, bare quotes and
    control characters are escaped.
    """
    escaped = []
    index = 0
    while index < len(content):
        char = content[index]

        if char == "\\":
            following = content[index + 1] if index + 1 < len(content) else ""
            if following in _VALID_ESCAPES and following:
                if following != "u" or _HEX4.match(content, index + 2):
                    escaped.append(char + following)
                    index += 2
                    continue
            escaped.append("\\\\")
        elif char == '"':
            escaped.append('\\"')
        elif char in _CONTROL_ESCAPES:
            escaped.append(_CONTROL_ESCAPES[char])
        elif ord(char) < 0x20:
            escaped.append(f"\\u{ord(char):04x}")
        else:
            escaped.append(char)
        index += 1

    return "".join(escaped)


def reescape_free_text_fields(json_str: str, fields: Tuple[str, ...]) -> str:
    """Re-escape the values of known free-text fields.

    A value is taken to run up to the first unescaped quote that is
    followed by a comma, a closing brace or bracket, or the end of text.
    """
    for field in fields:
        pattern = re.compile(
            r'("%s"\s*:\s*")(.*?)((?<!\\)"\s*(?:[,}\]]|$))' % re.escape(field),
            re.DOTALL,
        )
        json_str = pattern.sub(
            lambda match: match.group(1) + escape_string_content(match.group(2)) + match.group(3),
            json_str,
        )
    return json_str


def escape_control_chars_in_strings(json_str: str) -> str:
    """Escape raw control characters that appear inside string literals."""
    repaired = []
    in_string = False
    escape_next = False
    for char in json_str:
        if escape_next:
            escape_next = False
            repaired.append(char)
            continue
        if in_string and char == "\\":
            escape_next = True
            repaired.append(char)
            continue
        if char == '"':
            in_string = not in_string
            repaired.append(char)
            continue

        if in_string and char in _CONTROL_ESCAPES:
            repaired.append(_CONTROL_ESCAPES[char])
        elif in_string and ord(char) < 0x20:
            repaired.append(f"\\u{ord(char):04x}")
        else:
            repaired.append(char)

    return "".join(repaired)


def unescape_fragment(fragment: str) -> str:
    """Decode the escape sequences of a captured string value."""
    try:
        value = json.loads(f'"{fragment}"', strict=False)
        if isinstance(value, str):
            return value
    except ValueError:
        pass
    return _ESCAPED_CHAR.sub(lambda match: _UNESCAPES[match.group(1)], fragment)


def _has_schema_fields(data: Dict[str, Any], schema: ResponseSchema) -> bool:
    return any(field in data for field in schema.all_fields)


def _load_payload(candidate: str, schema: ResponseSchema) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(candidate)
    except ValueError:
        return None

    if isinstance(parsed, list):
        parsed = schema.wrap_list(parsed)
    if isinstance(parsed, dict) and _has_schema_fields(parsed, schema):
        return parsed
    return None


def _repair_variants(candidate: str, free_text_fields: Tuple[str, ...]) -> Iterator[str]:
    yield candidate
    yield escape_control_chars_in_strings(candidate)
    reescaped = reescape_free_text_fields(candidate, free_text_fields)
    if reescaped != candidate:
        yield reescaped
        yield escape_control_chars_in_strings(reescaped)


def _candidate_slices(text: str, schema: ResponseSchema) -> List[str]:
    slices: List[str] = []

    bounds = find_json_object_bounds(text)
    if bounds:
        slices.append(text[bounds[0]:bounds[1]])

    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        slices.append(text[first:last + 1])

    if schema.wrap_list([]) is not None:
        first, last = text.find("["), text.rfind("]")
        if first != -1 and last > first:
            slices.append(text[first:last + 1])

    unique: List[str] = []
    for candidate in slices:
        if candidate not in unique:
            unique.append(candidate)
    return unique


def extract_field_from_broken_json(text: str, field_name: str) -> Optional[str]:
    """Extract a string field from broken JSON using regex.

    Tries a closed value first and then a value cut off by the end of the
    text, which is what truncated responses look like.

    Args:
        text: The text containing broken JSON
        field_name: The key to extract

    Returns:
        Unescaped value or None
    """
    key = re.escape(field_name)
    closed = re.search(r'"%s"\s*:\s*"(.*?)(?<!\\)"\s*(?:[,}\]]|$)' % key, text, re.DOTALL)
    if closed:
        return unescape_fragment(closed.group(1))

    truncated = re.search(r'"%s"\s*:\s*"(.*)$' % key, text, re.DOTALL)
    if truncated:
        return unescape_fragment(truncated.group(1).rstrip().rstrip('"}]').rstrip())

    return None


def extract_number_field(text: str, field_name: str) -> Optional[float]:
    match = re.search(r'"%s"\s*:\s*"?(-?\d+(?:\.\d+)?)' % re.escape(field_name), text)
    if match:
        return float(match.group(1))
    return None


def extract_string_list(text: str, field_name: str) -> Optional[List[str]]:
    """Extract an array of strings, tolerating a missing closing bracket."""
    match = re.search(r'"%s"\s*:\s*\[' % re.escape(field_name), text)
    if not match:
        return None

    body = text[match.end():_find_closing_bracket(text, match.end())]
    return [unescape_fragment(item) for item in _QUOTED_STRING.findall(body)]


def extract_object_list(text: str, field_name: str, schema: ResponseSchema) -> List[Dict[str, Any]]:
    """Recover the objects of an array one at a time.

    Objects that cannot be repaired are skipped and an object cut off by
    the end of the text ends the scan, so a truncated response still yields
    every complete object before the cut.
    """
    match = re.search(r'"%s"\s*:\s*\[' % re.escape(field_name), text)
    if match:
        position = match.end()
        end = _find_closing_bracket(text, position)
    elif schema.wrap_list([]) is not None and "[" in text:
        position = text.find("[") + 1
        end = len(text)
    else:
        return []

    objects = []
    while position < end:
        bounds = find_json_object_bounds(text, position)
        if bounds is None or bounds[0] >= end:
            break

        chunk = text[bounds[0]:bounds[1]]
        for variant in _repair_variants(chunk, schema.free_text_fields):
            try:
                parsed = json.loads(variant)
            except ValueError:
                continue
            if isinstance(parsed, dict):
                objects.append(parsed)
                break
        position = bounds[1]

    return objects


def extract_known_fields(text: str, schema: ResponseSchema) -> Optional[Dict[str, Any]]:
    """Pull every field the schema knows about out of unparseable text."""
    found: Dict[str, Any] = {}

    for field in schema.string_fields:
        value = extract_field_from_broken_json(text, field)
        if value is not None:
            found[field] = value

    for field in schema.number_fields:
        number = extract_number_field(text, field)
        if number is not None:
            found[field] = number

    for field in schema.string_list_fields:
        items = extract_string_list(text, field)
        if items is not None:
            found[field] = items

    for field in schema.object_list_fields:
        objects = extract_object_list(text, field, schema)
        if objects:
            found[field] = objects

    return found or None


def _recover_payload(text: str, schema: ResponseSchema) -> Tuple[Optional[Dict[str, Any]], str]:
    payload = _load_payload(text, schema)
    if payload is not None:
        return payload, "direct"

    for candidate in _candidate_slices(text, schema):
        for variant in _repair_variants(candidate, schema.free_text_fields):
            payload = _load_payload(variant, schema)
            if payload is not None:
                return payload, "repaired"

    payload = extract_known_fields(text, schema)
    if payload is not None:
        return payload, "extracted"

    return None, "placeholder"


def repair_json_response(raw_text: Optional[str], schema: ResponseSchema) -> Dict[str, Any]:
    """Turn raw model output into a payload that matches ``schema``.

    Never raises: when nothing can be recovered the schema placeholder is
    returned.

    Args:
        raw_text: Text returned by the model, possibly empty
        schema: Expected response shape

    Returns:
        Structurally valid payload for the schema
    """
    cleaned = strip_code_fences(raw_text or "")
    if not cleaned:
        LOGGER.warning(f"Empty model response for {schema.name}, using placeholder")
        return schema.placeholder("")

    try:
        payload, strategy = _recover_payload(cleaned, schema)
        if payload is not None:
            LOGGER.debug(f"Recovered {schema.name} payload", extra={"strategy": strategy})
            return schema.coerce(payload)
    except Exception as e:
        LOGGER.error(f"Unexpected error repairing {schema.name} payload: {e}", exc_info=True)

    LOGGER.warning(
        f"Could not recover {schema.name} payload, using placeholder",
        extra={"response_excerpt": cleaned[:200]},
    )
    return schema.placeholder(cleaned)

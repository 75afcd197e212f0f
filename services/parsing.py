"""Extraction of JSON objects embedded in model prose."""
import json
import re
from typing import Any, Dict, Iterator, Optional

from core.errors import MalformedModelOutput

_FENCE_OPEN = re.compile(r"```(?:json|JSON)?\s*")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fence markers and surrounding whitespace."""
    return _FENCE_OPEN.sub("", text.strip()).strip()


def _balanced_end(text: str, start: int) -> int:
    """Index of the brace closing the one at ``start``, or -1. Braces inside strings are ignored."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def iter_json_objects(text: str) -> Iterator[str]:
    """Yield every balanced ``{...}`` span in order of its opening brace."""
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end != -1:
            yield text[start:end + 1]
        start = text.find("{", start + 1)


def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span, ignoring braces inside strings."""
    return next(iter_json_objects(text), None)


def extract_json_object(text: str) -> Dict[str, Any]:
    """Decode the JSON object a model response carries.

    Tries the whole (fence-stripped) text first, then each balanced object
    span in turn. Raises MalformedModelOutput when none decodes to an object.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
        if isinstance(data, dict):
            return data
    except ValueError:
        pass

    last_error = None
    for span in iter_json_objects(cleaned):
        try:
            data = json.loads(span)
        except ValueError as e:
            last_error = e
            continue
        if isinstance(data, dict):
            return data
    if last_error is not None:
        raise MalformedModelOutput(f"failed to parse JSON: {last_error}", raw=text) from last_error
    raise MalformedModelOutput("no JSON object found in model output", raw=text)

"""
JSON Extraction for LLM Responses

Reduces a raw model response to the JSON object it should contain.

Steps (in order):
1. Strip leaked citation markup (<cite index="...">...</cite>)
2. Strip a leading/trailing markdown code fence
3. Extract the first balanced {...} object (string and escape aware)
4. Parse it

There is deliberately no repair or retry at this level; a failure raises
ContentParseError and the caller decides what to do.
"""

import json
import re
from typing import Any, Dict, List, Optional


CITE_TAG_PATTERN = re.compile(r"</?cite[^>]*>")
LEADING_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*")
TRAILING_FENCE_PATTERN = re.compile(r"```\s*$")


class ContentParseError(Exception):
    """Raised when a model response cannot be reduced to a JSON object."""
    def __init__(self, message: str, original_content: str, attempts: Optional[List[str]] = None):
        super().__init__(message)
        self.original_content = original_content
        self.attempts = attempts or []


def strip_citation_tags(text: str) -> str:
    return CITE_TAG_PATTERN.sub("", text)


def strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = LEADING_FENCE_PATTERN.sub("", text)
        text = TRAILING_FENCE_PATTERN.sub("", text)
    return text.strip()


def find_first_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} substring, ignoring braces that appear
    inside JSON string literals. None if no balanced object exists.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False

        for pos in range(start, len(text)):
            char = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]

        # Unbalanced from this brace; try the next opening brace
        start = text.find("{", start + 1)

    return None


def extract_json_object(raw: str) -> Dict[str, Any]:
    """
    Extract and parse the JSON object contained in a model response.

    Args:
        raw: Concatenated text of the model response

    Returns:
        Parsed JSON object

    Raises:
        ContentParseError: If no object is found or it is not valid JSON
    """
    attempts = []

    text = strip_citation_tags(raw)
    attempts.append("strip_citation_tags")
    text = strip_code_fences(text)
    attempts.append("strip_code_fences")

    candidate = find_first_json_object(text)
    if candidate is None:
        attempts.append("balanced_object: not found")
        raise ContentParseError("No JSON object found in model response", raw, attempts)

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        attempts.append(f"json_parse: {e.msg}")
        raise ContentParseError(f"Failed to parse model response as JSON: {e}", raw, attempts) from e

    return parsed

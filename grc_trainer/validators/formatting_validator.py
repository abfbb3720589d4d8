"""
Formatting Validator

Walks a generated JSON section and flags layout defects in its string leaves
that would render badly in the session player:

- codeFence: triple backticks outside a code field
- htmlTagLeak: markup such as <b> or </cite> left in prose
- spaceBeforePunctuation: "text ,here"
- unpairedMarkdown: an odd number of ** emphasis markers

Only dicts, lists and strings are inspected; numbers and booleans are ignored.
"""

import re
from typing import Any, List, Optional, Tuple

from grc_trainer.models.verification_models import FormattingIssue, FormattingIssueKind


# Fields that legitimately hold source code (code-challenge quiz items)
CODE_FIELDS = frozenset({"starter_code", "solution_code"})

SAMPLE_LENGTH = 140

CODE_FENCE_PATTERN = re.compile(r"```")
HTML_TAG_PATTERN = re.compile(r"</?[a-z][^>]*>", re.IGNORECASE)
SPACE_BEFORE_PUNCTUATION_PATTERN = re.compile(r"\s+([,.;:!?])")
BOLD_MARKER = "**"


# One collected leaf: (path, field name, text)
Leaf = Tuple[str, Optional[str], str]


def collect_string_leaves(value: Any, path: str = "", key: Optional[str] = None) -> List[Leaf]:
    """Collect every string leaf with its structural path, e.g. sections[2].content"""
    leaves: List[Leaf] = []
    _collect(value, path, key, leaves)
    return leaves


def _collect(value: Any, path: str, key: Optional[str], out: List[Leaf]) -> None:
    if isinstance(value, str):
        out.append((path, key, value))
    elif isinstance(value, list):
        for idx, item in enumerate(value):
            _collect(item, f"{path}[{idx}]", key, out)
    elif isinstance(value, dict):
        for k, v in value.items():
            _collect(v, f"{path}.{k}" if path else str(k), str(k), out)


def _check_leaf(key: Optional[str], text: str) -> List[FormattingIssueKind]:
    found = []
    if CODE_FENCE_PATTERN.search(text) and key not in CODE_FIELDS:
        found.append(FormattingIssueKind.CODE_FENCE)
    if HTML_TAG_PATTERN.search(text):
        found.append(FormattingIssueKind.HTML_TAG_LEAK)
    if SPACE_BEFORE_PUNCTUATION_PATTERN.search(text):
        found.append(FormattingIssueKind.SPACE_BEFORE_PUNCTUATION)
    if text.count(BOLD_MARKER) % 2 == 1:
        found.append(FormattingIssueKind.UNPAIRED_MARKDOWN)
    return found


def validate_formatting(content: Any) -> List[FormattingIssue]:
    """
    Validate the layout of a generated section.

    Args:
        content: Parsed JSON value (dict, list or string)

    Returns:
        Issues in leaf order, at most one per (path, kind)
    """
    issues: List[FormattingIssue] = []
    seen = set()

    for path, key, text in collect_string_leaves(content):
        for kind in _check_leaf(key, text):
            if (path, kind) in seen:
                continue
            seen.add((path, kind))
            issues.append(FormattingIssue(path=path, issue=kind, sample=text[:SAMPLE_LENGTH]))

    return issues


# =============================================================================
# Deterministic cleanup
# =============================================================================

def _clean_text(text: str) -> str:
    # Each pass only removes characters, so the loop reaches a fixpoint
    while True:
        cleaned = HTML_TAG_PATTERN.sub("", text)
        cleaned = re.sub(r"`{3,}", "", cleaned)
        if cleaned.count(BOLD_MARKER) % 2 == 1:
            idx = cleaned.rfind(BOLD_MARKER)
            cleaned = cleaned[:idx] + cleaned[idx + len(BOLD_MARKER):]
        cleaned = SPACE_BEFORE_PUNCTUATION_PATTERN.sub(r"\1", cleaned)
        if cleaned == text:
            return cleaned
        text = cleaned


def fix_formatting(content: Any) -> Any:
    """
    Return a copy of the content with every detectable formatting defect
    removed. validate_formatting(fix_formatting(x)) is always empty.
    """
    if isinstance(content, str):
        return _clean_text(content)
    if isinstance(content, list):
        return [fix_formatting(item) for item in content]
    if isinstance(content, dict):
        return {k: fix_formatting(v) for k, v in content.items()}
    return content

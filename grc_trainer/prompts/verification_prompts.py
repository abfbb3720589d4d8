"""
Verification Prompts

Fact-check prompts sent to the verification model. Scenario sections get a
variant that tells the checker to ignore the fictional narrative and only
audit the GRC claims embedded in it.
"""

from typing import Sequence

from grc_trainer.config.settings import SectionKind
from grc_trainer.models.content_models import Citation


VERIFICATION_ROLE = (
    "You are a rigorous GRC fact-checker auditing training content for junior GRC analysts."
)

SCORING_RULES = """### SCORING RULES
| Situation | confidenceScore |
|-----------|-----------------|
| No factual errors found | {baseline} |
| Exactly one factual error | 93-96 |
| Multiple factual errors | below 93 |

Start from {baseline}. Only deduct points for claims that are DEFINITIVELY WRONG, not imprecise or simplified.
- Well-established GRC knowledge (NIST CSF, ISO 27001, SOC 2, PCI DSS, COBIT, GDPR, HIPAA, SOX, CCPA) does not need citations.
- If you are UNCERTAIN whether a claim is wrong, score it as correct.
- Do NOT penalize pedagogical simplifications, missing citations or teaching-oriented framing."""

VERIFICATION_OUTPUT = """Respond with ONLY valid JSON (no markdown, no code fences):
{{
  "confidenceScore": number,
  "assessment": "string",
  "flaggedClaims": [
    {{
      "claim": "string",
      "issue": "string",
      "suggestion": "string",
      "section": "string"
    }}
  ]
}}"""


STANDARD_VERIFICATION_PROMPT = """{role}

Verify the factual accuracy of the following {kind} content. Check framework names and versions, clause and control numbers, regulatory requirements, dates, and attributions. Use the provided citations as supporting evidence and search the web where they are insufficient.

CONTENT:
{content}

CITATIONS:
{citations}

{scoring}

Flag every inaccurate or unverifiable claim with the exact text, the problem, a corrected version, and the section where it appears.

{output}"""


SCENARIO_VERIFICATION_PROMPT = """{role}

The following scenario is a FICTIONAL case study. Do not flag the fictional company, people, events, or numbers. Instead, extract every GRC claim embedded in the scenario and its analysis answers (framework requirements, regulatory obligations, control references, enforcement precedents) and verify only those.

CONTENT:
{content}

CITATIONS:
{citations}

{scoring}

Flag every inaccurate GRC claim with the exact text, the problem, a corrected version, and the section where it appears.

{output}"""


NO_CITATIONS = "No citations were provided."


def format_citations(citations: Sequence[Citation]) -> str:
    """Render citations as a numbered block, one per line"""
    if not citations:
        return NO_CITATIONS

    lines = []
    for i, citation in enumerate(citations, start=1):
        line = f"{i}. [{citation.title or citation.url}]({citation.url})"
        if citation.cited_text:
            line += f' - "{citation.cited_text}"'
        lines.append(line)
    return "\n".join(lines)


def build_verification_prompt(
    kind: SectionKind,
    content_json: str,
    citations: Sequence[Citation],
    baseline: int = 97,
) -> str:
    """
    Build the fact-check prompt for one generated section.

    Args:
        kind: Section kind; scenarios get the fiction-aware variant
        content_json: Serialized section content
        citations: Sources returned alongside the generation
        baseline: Score awarded when no errors are found

    Returns:
        Prompt string asking for a confidenceScore / flaggedClaims JSON object
    """
    kind = SectionKind(kind)
    template = SCENARIO_VERIFICATION_PROMPT if kind == SectionKind.SCENARIO else STANDARD_VERIFICATION_PROMPT

    return template.format(
        role=VERIFICATION_ROLE,
        kind=kind.value,
        content=content_json,
        citations=format_citations(citations),
        scoring=SCORING_RULES.format(baseline=baseline),
        output=VERIFICATION_OUTPUT,
    )

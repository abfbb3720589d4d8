"""
Section Generation Prompts

One template per section kind. Every template frames the model as a GRC
training expert, pins current framework versions, sets a length target and
ends with a strict JSON output contract.
"""

from typing import List, Sequence

from grc_trainer.config.settings import SectionKind
from grc_trainer.models.content_models import FlaggedClaim
from grc_trainer.models.curriculum_models import TopicDescriptor
from grc_trainer.models.verification_models import FormattingIssue, QuizValidationIssue


ROLE_FRAMING = (
    "You are a GRC (Governance, Risk & Compliance) training expert creating content "
    "for junior GRC analysts and engineers."
)

CURRENT_FRAMEWORK_VERSIONS = """Use current versions of all standards and frameworks:
- NIST CSF 2.0 (not 1.1)
- ISO 27001:2022 (not 2013)
- SOC 2 (2017 Trust Services Criteria)
- PCI DSS 4.0
- COBIT 2019
- GDPR (Regulation 2016/679)
- CCPA as amended by CPRA"""

JSON_ONLY = "Respond with ONLY valid JSON matching this schema (no markdown, no code fences):"


LESSON_PROMPT = """{role}

IMPORTANT: Before writing, search the web to verify all facts, framework details, and regulatory references. Only state verifiable facts. Reference specific clause numbers, section IDs, or control numbers where applicable.

{frameworks}

Generate a structured lesson on the following topic for a {level}-level audience in the {domain} domain.

{topic_block}

Requirements:
- Write approximately 1,200 words total across all sections.
- Use practical, real-world examples from corporate compliance, regulatory environments, or risk management.
- Include 3-5 content sections, each with a clear heading.
- Where appropriate, include a keyTermCallout in a section to highlight and define an important term.
- Provide 3-5 concise key takeaways at the end.
- Set estimatedReadingTime to the approximate minutes needed to read the lesson.
- If you are uncertain about any fact, note the limitation rather than stating it as fact.

{json_only}
{{
  "title": "string",
  "estimatedReadingTime": number,
  "introduction": "string",
  "sections": [
    {{
      "heading": "string",
      "content": "string",
      "keyTermCallout": {{ "term": "string", "definition": "string" }}
    }}
  ],
  "keyTakeaways": ["string"]
}}"""


SCENARIO_PROMPT = """{role}

IMPORTANT: Before writing, search the web for real-world incidents, enforcement actions, or case studies relevant to this topic. Base your scenario on realistic patterns from actual cases and cite the real precedents that inspired it.

{frameworks}

Generate a realistic case-study scenario on the following topic for a {level}-level audience in the {domain} domain.

{topic_block}

Requirements:
- Write approximately 500 words total.
- Set the scenario in a believable corporate or regulatory context inspired by real events.
- Provide 2-4 analysis questions, each with a model analysis answer that references specific best practices, frameworks, or regulatory requirements.
- The scenario should challenge the reader to apply knowledge, not just recall facts.

{json_only}
{{
  "title": "string",
  "context": "string",
  "scenario": "string",
  "analysisQuestions": [
    {{ "question": "string", "analysis": "string" }}
  ]
}}"""


QUIZ_PROMPT = """{role}

IMPORTANT: Before writing, search the web to verify each correct answer against authoritative sources. Every explanation must reference the specific standard, regulation, or framework clause that supports the answer. Do not guess, verify.

{frameworks}

Generate a quiz on the following topic for a {level}-level audience in the {domain} domain.

{topic_block}

Requirements:
- Generate exactly 6 assessment items.
- Default format is multiple choice with exactly 4 options (A-D), using 0-based correctIndex.
- {code_challenge_rule}
- Every item must include an explanation tied to authoritative control/framework intent.
- Mix difficulty: 2 recall, 2 application, 2 analysis-level prompts.
- Give each item a unique id like "q1", "q2", etc.

{json_only}
{{
  "questions": [
    {{
      "id": "string",
      "format": "multiple_choice",
      "question": "string",
      "options": ["string", "string", "string", "string"],
      "correctIndex": number,
      "explanation": "string"
    }},
    {{
      "id": "string",
      "format": "code_challenge",
      "language": "hcl|yaml|json|python|bash",
      "scenario_context": "string",
      "control_mapping": "string",
      "expected_artifact": "string",
      "starter_code": "string",
      "solution_code": "string",
      "validation": {{
        "required_patterns": ["string"],
        "forbidden_patterns": ["string"],
        "min_occurrences": {{ "string": 1 }}
      }},
      "hints": ["string"],
      "explanation": "string"
    }}
  ]
}}"""

CODE_CHALLENGE_REQUIRED = (
    'This topic is engineering-oriented: include at least one item using format "code_challenge" '
    "whose solution_code satisfies its own validation patterns."
)
CODE_CHALLENGE_OPTIONAL = (
    "If the topic is engineering-oriented (automation, IaC, pipelines, policy-as-code), "
    'include at least one item using format "code_challenge".'
)


NEWS_BYTE_PROMPT = """You are a GRC (Governance, Risk & Compliance) news analyst creating a briefing for compliance professionals.

IMPORTANT: Search the web for REAL, current news and developments related to this topic from the past 6 months. Do NOT fabricate news. Every update must reference a real article, regulation, or announcement that you found through search.

Topic: {title}
Domain: {domain}
Key Terms: {key_terms}
Additional Guidance: {prompt_hints}

Requirements:
- Write approximately 400 words total.
- Create a compelling headline summarizing the current landscape.
- Write a 1-2 sentence summary.
- Include 2-3 updates based on REAL news you found via search. Each update must have a title, a content paragraph explaining the details, and a "source" field with the REAL publication name.
- End with a "Why It Matters" paragraph explaining relevance to GRC professionals and how it connects to the training topic.

{json_only}
{{
  "headline": "string",
  "summary": "string",
  "updates": [
    {{ "title": "string", "content": "string", "source": "string" }}
  ],
  "whyItMatters": "string"
}}"""


CAPSTONE_PROMPT = """You are a senior GRC program lead designing a capstone assignment.

{frameworks}

Create an applied capstone for:
Topic: {title}
Domain: {domain}
Level: {level}
Objectives: {objectives}

Requirements:
- Provide a realistic deliverable prompt with explicit format guidance.
- Include 3 synthesis questions that require tradeoff reasoning.
- Include 3 scenario decision points with options, best option, and rationale.
- Include a 4-criterion rubric with excellent/acceptable/needs_work expectations.
- Keep outputs practical and enterprise-oriented.

{json_only}
{{
  "deliverable_prompt": "string",
  "deliverable_format": "string",
  "synthesis_questions": [
    {{ "question": "string", "guidance": "string" }}
  ],
  "scenario_decisions": [
    {{
      "situation": "string",
      "options": ["string", "string", "string"],
      "best_option": "string",
      "rationale": "string"
    }}
  ],
  "rubric": [
    {{
      "criterion": "string",
      "excellent": "string",
      "acceptable": "string",
      "needs_work": "string"
    }}
  ]
}}"""


CORRECTION_SUFFIX = """

CRITICAL CORRECTIONS REQUIRED - The previous version of this content had the following accuracy issues that MUST be fixed:
{claim_fixes}
{formatting_fixes}{structure_fixes}
Ensure all of the above issues are corrected in your response. Search the web again if needed to verify factual corrections.
Output clean prose with no HTML tags, no markdown code fences, and proper punctuation spacing."""


def _topic_block(topic: TopicDescriptor) -> str:
    return (
        f"Topic: {topic.title}\n"
        f"Learning Objectives: {'; '.join(topic.objectives)}\n"
        f"Key Terms to Cover: {', '.join(topic.key_terms)}\n"
        f"Additional Guidance: {topic.prompt_hints}"
    )


def build_section_prompt(topic: TopicDescriptor, kind: SectionKind) -> str:
    """
    Build the generation prompt for one section of a topic.

    Args:
        topic: Curriculum module to write about
        kind: Section kind (lesson, scenario, quiz, newsByte, capstone)

    Returns:
        Prompt string ending with the JSON output contract
    """
    kind = SectionKind(kind)
    common = {
        "role": ROLE_FRAMING,
        "frameworks": CURRENT_FRAMEWORK_VERSIONS,
        "json_only": JSON_ONLY,
        "level": topic.level,
        "domain": topic.domain,
        "title": topic.title,
    }

    if kind == SectionKind.LESSON:
        return LESSON_PROMPT.format(topic_block=_topic_block(topic), **common)
    if kind == SectionKind.SCENARIO:
        return SCENARIO_PROMPT.format(topic_block=_topic_block(topic), **common)
    if kind == SectionKind.QUIZ:
        rule = CODE_CHALLENGE_REQUIRED if topic.is_engineering else CODE_CHALLENGE_OPTIONAL
        return QUIZ_PROMPT.format(topic_block=_topic_block(topic), code_challenge_rule=rule, **common)
    if kind == SectionKind.NEWS_BYTE:
        return NEWS_BYTE_PROMPT.format(
            key_terms=", ".join(topic.key_terms),
            prompt_hints=topic.prompt_hints,
            **common,
        )
    if kind == SectionKind.CAPSTONE:
        return CAPSTONE_PROMPT.format(objectives="; ".join(topic.objectives), **common)

    raise ValueError(f"Unsupported section kind: {kind}")


def build_correction_prompt(
    original_prompt: str,
    flagged_claims: Sequence[FlaggedClaim],
    formatting_issues: Sequence[FormattingIssue] = (),
    structure_issues: Sequence[QuizValidationIssue] = (),
) -> str:
    """
    Append an enumerated list of required fixes to the original prompt.

    The original prompt is always the base, so corrections never stack
    across retries; only the latest findings are embedded.
    """
    claim_lines: List[str] = [
        f'{i}. CLAIM: "{c.claim}" - ISSUE: {c.issue} - FIX: {c.suggestion}'
        for i, c in enumerate(flagged_claims, start=1)
    ]

    formatting_fixes = ""
    if formatting_issues:
        issue_lines = [
            f'{i}. PATH: {f.path} - ISSUE: {f.issue.value} - SAMPLE: "{f.sample}"'
            for i, f in enumerate(formatting_issues, start=1)
        ]
        formatting_fixes = "\nFORMATTING FIXES REQUIRED:\n" + "\n".join(issue_lines) + "\n"

    structure_fixes = ""
    if structure_issues:
        structure_lines = [f"{i}. {s.code}: {s.message}" for i, s in enumerate(structure_issues, start=1)]
        structure_fixes = "\nSTRUCTURE FIXES REQUIRED:\n" + "\n".join(structure_lines) + "\n"

    return original_prompt + CORRECTION_SUFFIX.format(
        claim_fixes="\n".join(claim_lines) or "None provided.",
        formatting_fixes=formatting_fixes,
        structure_fixes=structure_fixes,
    )

"""
Generation Client

Wraps the text-generation capability: invokes it (optionally with a bounded
web search tool), extracts the JSON object from the concatenated text and
collects the sources the model relied on.

The capability itself is a small protocol so the pipeline can run against
OpenAI's Responses API in production and a scripted fake in tests.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol

from openai import AsyncOpenAI

from grc_trainer.config.settings import PipelineConfig, get_config
from grc_trainer.models.content_models import Citation
from grc_trainer.providers.llm_provider import (
    LLMProvider,
    create_llm_client,
    get_model_name,
    get_provider_config,
    resolve_provider,
)
from grc_trainer.services.json_parser import extract_json_object


logger = logging.getLogger(__name__)


JSON_SYSTEM_PROMPT = (
    "You are an expert GRC training content creator. "
    "You MUST respond with ONLY a valid JSON object. No markdown code blocks, no extra text."
)


class GenerationError(Exception):
    """Raised when the capability returns no usable text"""
    def __init__(self, message: str, prompt_preview: str = ""):
        super().__init__(message)
        self.prompt_preview = prompt_preview


@dataclass
class CapabilityResponse:
    """Raw output of one capability call"""
    text_blocks: List[str] = field(default_factory=list)
    citations: List[Citation] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.text_blocks)


class GenerationCapability(Protocol):
    """Anything that can turn a prompt into text, optionally searching the web"""

    async def invoke(self, prompt: str, web_search_max_uses: int = 0) -> CapabilityResponse:
        ...


@dataclass
class GenerationResult:
    """Parsed JSON content plus the sources it was grounded on"""
    content: Dict[str, Any]
    citations: List[Citation] = field(default_factory=list)


def dedupe_citations(citations: Iterable[Citation]) -> List[Citation]:
    """Keep the first citation for each url, preserving order"""
    seen = set()
    unique = []
    for citation in citations:
        if not citation.url or citation.url in seen:
            continue
        seen.add(citation.url)
        unique.append(citation)
    return unique


# =============================================================================
# OpenAI adapter
# =============================================================================

class OpenAIResponsesCapability:
    """
    Generation capability backed by an OpenAI-compatible client.

    Calls with a search budget go through the Responses API with the
    web_search tool, bounded by max_tool_calls. Calls without a budget, or
    against providers that have no web search, use Chat Completions.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        config: Optional[PipelineConfig] = None,
    ):
        config = config or get_config()
        self.provider = provider or resolve_provider()
        self.provider_config = get_provider_config(self.provider)
        self.client = client or create_llm_client(self.provider, timeout=config.request_timeout_seconds)
        self.model = model or config.model or get_model_name("quality", self.provider)
        self.max_tokens = max_tokens or config.max_tokens

    async def invoke(self, prompt: str, web_search_max_uses: int = 0) -> CapabilityResponse:
        if web_search_max_uses > 0 and self.provider_config.supports_web_search:
            return await self._invoke_with_search(prompt, web_search_max_uses)
        return await self._invoke_basic(prompt)

    async def _invoke_with_search(self, prompt: str, max_uses: int) -> CapabilityResponse:
        response = await self.client.responses.create(
            model=self.model,
            instructions=JSON_SYSTEM_PROMPT,
            input=prompt,
            tools=[{"type": "web_search"}],
            max_tool_calls=max_uses,
            max_output_tokens=self.max_tokens,
            include=["web_search_call.action.sources"],
        )

        text_blocks: List[str] = []
        inline: List[Citation] = []
        searched: List[Citation] = []

        for item in response.output or []:
            item_type = getattr(item, "type", None)

            if item_type == "message":
                for block in getattr(item, "content", None) or []:
                    text = getattr(block, "text", None)
                    if not text:
                        continue
                    text_blocks.append(text)
                    for annotation in getattr(block, "annotations", None) or []:
                        if getattr(annotation, "type", None) != "url_citation":
                            continue
                        start = getattr(annotation, "start_index", 0) or 0
                        end = getattr(annotation, "end_index", 0) or 0
                        inline.append(Citation(
                            url=annotation.url,
                            title=getattr(annotation, "title", "") or "",
                            cited_text=text[start:end] if end > start else "",
                        ))

            elif item_type == "web_search_call":
                action = getattr(item, "action", None)
                for source in getattr(action, "sources", None) or []:
                    url = getattr(source, "url", None)
                    if url:
                        searched.append(Citation(url=url, title=getattr(source, "title", "") or ""))

        logger.info(
            f"[LLM] Responses call: {len(text_blocks)} text blocks, "
            f"{len(inline)} inline citations, {len(searched)} search sources"
        )
        return CapabilityResponse(text_blocks=text_blocks, citations=inline + searched)

    async def _invoke_basic(self, prompt: str) -> CapabilityResponse:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": JSON_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=self.max_tokens,
        )
        text = response.choices[0].message.content if response.choices else None
        return CapabilityResponse(text_blocks=[text] if text else [])


# =============================================================================
# Client
# =============================================================================

class GenerationClient:
    """Turns prompts into parsed JSON sections"""

    def __init__(self, capability: Optional[GenerationCapability] = None):
        self.capability = capability or OpenAIResponsesCapability()

    async def generate(self, prompt: str, max_search_invocations: int) -> GenerationResult:
        """
        Generate a JSON section with web search enabled.

        Args:
            prompt: Section or correction prompt
            max_search_invocations: Upper bound on web searches for this call

        Returns:
            GenerationResult with the parsed object and deduplicated citations

        Raises:
            GenerationError: The capability returned no text
            ContentParseError: The text holds no parseable JSON object
        """
        response = await self.capability.invoke(prompt, web_search_max_uses=max_search_invocations)
        content = self._parse(response, prompt)
        citations = dedupe_citations(response.citations)
        return GenerationResult(content=content, citations=citations)

    async def generate_basic(self, prompt: str) -> Dict[str, Any]:
        """Generate a JSON object without search tools; citations are discarded"""
        response = await self.capability.invoke(prompt, web_search_max_uses=0)
        return self._parse(response, prompt)

    def _parse(self, response: CapabilityResponse, prompt: str) -> Dict[str, Any]:
        text = response.text
        if not text.strip():
            raise GenerationError("No text content in generation response", prompt[:200])
        return extract_json_object(text)

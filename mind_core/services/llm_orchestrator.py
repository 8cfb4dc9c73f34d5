"""
LLM_ORCHESTRATOR
================

Generates exploration directions for a concept.

With an API key and base URL configured, directions come from an
OpenAI-compatible chat completions endpoint
(``POST {base_url}/v1/chat/completions``). The reply is expected to hold
a JSON array of direction objects; the first ``[`` through the last
``]`` is extracted and parsed.

Without a backend, or when the call or the parse fails, a deterministic
fallback set is returned instead. Direction generation never fails
because the backend is down.

Reply parsing
-------------
- type aliases: overview/expansion → broad, deepen/analysis → deep,
  adjacent → lateral, challenge → critical, anything else → broad
- description falls back to ``summary``
- keywords merge ``keywords`` and ``key_questions``
- relevance falls back through confidence, importance,
  suggested_relevance, suggested_confidence; clamped; 0 becomes 0.7
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import requests

from ..models import Direction, DirectionType, Thought

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
DEFAULT_MODEL = "gpt-4.1"
DEFAULT_RELEVANCE = 0.7
MAX_RESPONSE_CHARS = 2 * 1024 * 1024

SYSTEM_PROMPT = "You are an assistant that returns valid JSON matching the user's instructions."

_TYPE_ALIASES = {
    "broad": DirectionType.BROAD,
    "overview": DirectionType.BROAD,
    "expansion": DirectionType.BROAD,
    "deep": DirectionType.DEEP,
    "deepen": DirectionType.DEEP,
    "analysis": DirectionType.DEEP,
    "lateral": DirectionType.LATERAL,
    "adjacent": DirectionType.LATERAL,
    "critical": DirectionType.CRITICAL,
    "challenge": DirectionType.CRITICAL,
}

_RELEVANCE_KEYS = ("relevance", "confidence", "importance", "suggested_relevance", "suggested_confidence")


class LLMRequestError(Exception):
    """The chat completions call failed or returned nothing usable."""


# ============================================================================
# PROMPTS
# ============================================================================

@dataclass
class PromptTemplate:
    role: str
    mission: str
    deliverables: List[str] = field(default_factory=list)
    constraints: List[str] = field(default_factory=list)
    closing: str = ""


PROMPT_TEMPLATES: Dict[str, PromptTemplate] = {
    "directions": PromptTemplate(
        role="You are an experienced learning-path architect who breaks abstract themes "
             "into complementary exploration directions.",
        mission="Generate 3-5 expansion directions around the concept '{concept}' that stay "
                "aligned with the provided context.",
        deliverables=[
            "For each direction return type (broad/deep/lateral/critical), title, summary, "
            "key_questions (>=3 items) and relevance (0-1).",
            "Add a direction_rationale linking the suggestion to the user's background.",
        ],
        constraints=[
            "Directions must be distinct and non-overlapping.",
            "Call out missing information instead of guessing.",
        ],
        closing="Return only the JSON array.",
    ),
    "exploration": PromptTemplate(
        role="You are a research coach who guides users through deep exploration.",
        mission="For the concept '{concept}' and the chosen direction, outline hypotheses, "
                "key concepts and validation steps.",
        deliverables=["Return hypothesis, key_concepts and validation_steps fields."],
    ),
}

_SEGMENT_KEYS = {
    "background": "Background information",
    "context": "Background information",
    "domain": "Background information",
    "history": "Historical path",
    "path": "Historical path",
    "trajectory": "Historical path",
    "preference": "User preferences",
    "preferences": "User preferences",
    "style": "User preferences",
    "goal": "Explicit user goals",
    "goals": "Explicit user goals",
    "objective": "Explicit user goals",
    "intent": "Explicit user goals",
}
_SEGMENT_ORDER = ["Explicit user goals", "Background information", "Historical path",
                  "User preferences", "Additional notes"]


def unique_strings(values: Iterable[str]) -> List[str]:
    """Trimmed, non-empty, first occurrence wins."""
    seen = set()
    result = []
    for value in values or []:
        if not isinstance(value, str):
            continue
        normalized = value.strip()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        result.append(normalized)
    return result


def extract_context_segments(entries: Iterable[str]) -> Dict[str, List[str]]:
    """Group ``key: value`` context entries under prompt headings."""
    segments: Dict[str, List[str]] = {}
    for entry in unique_strings(entries):
        key, sep, value = entry.partition(":")
        key = key.strip().lower()
        value = value.strip()
        if sep and key in _SEGMENT_KEYS:
            segments.setdefault(_SEGMENT_KEYS[key], []).append(value)
        else:
            segments.setdefault("Additional notes", []).append(entry)
    return segments


def build_prompt(concept: str, context: Iterable[str], prompt_type: str = "directions") -> str:
    template = PROMPT_TEMPLATES.get(prompt_type, PROMPT_TEMPLATES["directions"])
    segments = extract_context_segments(context)

    lines = [f"System role: {template.role}", "", "## Mission", template.mission.format(concept=concept), ""]
    for heading in _SEGMENT_ORDER:
        items = segments.get(heading)
        if items:
            lines.append(f"## {heading}")
            lines.extend(f"- {item}" for item in items)
            lines.append("")
    if template.deliverables:
        lines.append("## Output requirements")
        lines.extend(f"{i}. {item}" for i, item in enumerate(template.deliverables, 1))
        lines.append("")
    if template.constraints:
        lines.append("## Constraints")
        lines.extend(f"- {item}" for item in template.constraints)
        lines.append("")
    if template.closing:
        lines.append(template.closing)

    return "\n".join(lines).strip()


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class LLMOrchestrator:
    """Chat-completions client with a deterministic offline fallback."""

    def __init__(self, api_key: str = "", base_url: str = "", model: str = DEFAULT_MODEL,
                 timeout_seconds: float = 15, max_tokens: int = 1024):
        self.api_key = api_key or ""
        self.base_url = (base_url or "").rstrip("/")
        self.model = model or DEFAULT_MODEL
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens

    @classmethod
    def from_config(cls, config) -> "LLMOrchestrator":
        """Build from an ``LLMConfig``."""
        return cls(
            api_key=config.api_key,
            base_url=config.base_url,
            model=config.model,
            timeout_seconds=config.timeout_seconds,
            max_tokens=config.max_tokens,
        )

    @property
    def has_remote_backend(self) -> bool:
        return bool(self.base_url and self.api_key)

    @property
    def endpoint(self) -> str:
        if self.base_url.endswith(CHAT_COMPLETIONS_PATH):
            return self.base_url
        return self.base_url + CHAT_COMPLETIONS_PATH

    def generate_thought_directions(self, concept: str, context: Optional[List[str]] = None) -> List[Direction]:
        """
        Directions for ``concept``, from the backend when available.

        Raises:
            ValueError: Empty concept.
        """
        concept = (concept or "").strip()
        if not concept:
            raise ValueError("concept is required")
        context = unique_strings(context or [])

        if self.has_remote_backend:
            try:
                content = self.call_llm(build_prompt(concept, context, "directions"), context)
                directions = parse_directions(content)
                if directions:
                    return directions
                logger.warning("LLM reply held no usable directions, using fallback")
            except LLMRequestError as e:
                logger.warning(f"LLM call failed while generating directions: {e}")
            except ValueError as e:
                logger.warning(f"Failed to parse LLM directions response: {e}")

        return generate_fallback_directions(concept, context)

    def explore_direction(self, direction: Direction, depth: int = 1,
                          context: Optional[List[str]] = None) -> List[Thought]:
        """``depth`` detached thoughts titled "<title> - depth level i"."""
        if depth <= 0:
            depth = 1
        title = direction.title or direction.label

        thoughts = []
        for level in range(1, depth + 1):
            thought = Thought.create(f"{title} - depth level {level}", "", direction.clone())
            thought.depth = level
            thoughts.append(thought)
        return thoughts

    def call_llm(self, prompt: str, context: Optional[List[str]] = None,
                 temperature: float = 0.7) -> str:
        """
        POST one user message and return the reply text.

        Raises:
            LLMRequestError: Network failure, HTTP error, or empty/malformed reply.
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise LLMRequestError("prompt is empty")

        user_content = prompt
        if context:
            user_content = prompt + "\n\nContext:\n" + "\n".join(f"- {c}" for c in unique_strings(context))

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_content},
            ],
            "max_tokens": self.max_tokens,
            "temperature": max(0.0, min(temperature, 2.0)),
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            resp = requests.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise LLMRequestError(f"llm request failed: {e}") from e

        if resp.status_code >= 400:
            raise LLMRequestError(f"llm http {resp.status_code}: {resp.text[:512]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMRequestError(f"decode llm response: {e}") from e

        choices = (data.get("choices") or []) if isinstance(data, dict) else []
        if not choices:
            raise LLMRequestError("llm response missing choices")

        first = choices[0] or {}
        content = ((first.get("message") or {}).get("content") or first.get("text") or "").strip()
        if not content:
            raise LLMRequestError("llm response empty")
        return content[:MAX_RESPONSE_CHARS]

    def health_check(self) -> Dict[str, Any]:
        """Static status; does not contact the backend."""
        return {
            "status": "ok",
            "backend": "remote" if self.has_remote_backend else "fallback",
            "model": self.model,
        }


# ============================================================================
# PARSING & FALLBACK
# ============================================================================

def _parse_direction_type(value: Any) -> DirectionType:
    return _TYPE_ALIASES.get(str(value or "").strip().lower(), DirectionType.BROAD)


def _parse_relevance(item: Dict[str, Any]) -> float:
    relevance = 0.0
    for key in _RELEVANCE_KEYS:
        value = item.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value != 0:
            relevance = float(value)
            break
    relevance = max(0.0, min(relevance, 1.0))
    return relevance or DEFAULT_RELEVANCE


def parse_directions(content: str) -> List[Direction]:
    """
    Parse a JSON array of directions out of an LLM reply.

    Raises:
        ValueError: No JSON array, or no entry with both title and description.
    """
    text = (content or "").strip()
    if not text:
        raise ValueError("llm response empty")

    start, end = text.find("["), text.rfind("]")
    if start >= 0 and end > start:
        text = text[start:end + 1]

    raw = json.loads(text)
    if not isinstance(raw, list):
        raise ValueError("expected a JSON array of directions")

    results = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        description = str(item.get("description") or item.get("summary") or "").strip()
        if not title or not description:
            continue

        keywords = unique_strings(list(item.get("keywords") or []) + list(item.get("key_questions") or []))
        rationale = str(item.get("direction_rationale") or "").strip()
        if not keywords and rationale:
            keywords = [rationale[:64]]

        results.append(Direction(
            type=_parse_direction_type(item.get("type")),
            title=title,
            description=description,
            keywords=keywords,
            relevance=_parse_relevance(item),
        ))

    if not results:
        raise ValueError("no valid directions returned")
    return results


def generate_fallback_directions(concept: str, context: Optional[List[str]] = None) -> List[Direction]:
    """
    Deterministic directions: broad, deep and lateral always, plus a
    critical one when the context holds at least three entries.
    """
    concept = (concept or "").strip() or "the topic"
    context = unique_strings(context or [])
    key_topics = context or [concept]
    base_relevance = 0.65 + min(len(key_topics) * 0.03, 0.25)

    plans = [
        (DirectionType.BROAD,
         f"Mapping the {concept} landscape",
         f"Survey the primary themes, actors and trends that define {concept} today.",
         ["overview", concept]),
        (DirectionType.DEEP,
         f"Deep dive into core mechanics of {concept}",
         f"Analyze foundational principles, frameworks and edge cases that underpin {concept}.",
         ["analysis", "core principles"]),
        (DirectionType.LATERAL,
         f"Adjacent inspirations for {concept}",
         f"Explore parallels from neighboring domains to reframe assumptions about {concept}.",
         ["analogy", "cross-domain"]),
        (DirectionType.CRITICAL,
         f"Stress-testing {concept} assumptions",
         f"Identify risks, limitations and unresolved questions to make {concept} plans more robust.",
         ["risks", "open questions"]),
    ]

    results = []
    for i, (direction_type, title, description, keys) in enumerate(plans):
        if i >= 3 and len(context) < 3:
            break
        results.append(Direction(
            type=direction_type,
            title=title,
            description=description,
            keywords=unique_strings(keys + key_topics),
            relevance=min(1.0, base_relevance - 0.05 * i),
        ))
    return results

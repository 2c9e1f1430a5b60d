"""
Grounded Answer Writer
Builds the strict system prompt and the serialized hotel context, then asks
Gemini for one short answer. Only used when no deterministic renderer
claimed the question.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from olly.config import settings
from olly.knowledge.records import HotelRecord, OutputRule

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {"en": "English", "hr": "Croatian"}

SYSTEM_PROMPT = """You are Olly, the website assistant of {hotel_name}.

NON-NEGOTIABLE RULES:
1. Answer hotel-specific questions ONLY from the HOTEL CORE and HOTEL RECORDS supplied below.
2. If the answer is not in the supplied context, say you don't have that information and suggest contacting reception.
3. NEVER invent prices, policies, schedules, opening hours, phone numbers, emails or addresses.
4. General questions about the city and its landmarks may be answered from general knowledge, briefly.
5. Keep answers short: at most 4 sentences, or a short list.
6. When the answer is a list of items, render it as a bulleted list.
7. Copy room names, service names, times and labels exactly as they appear in the context.
8. Answer in {language}.
9. Plain text only — no markdown headings, no emojis."""


@dataclass
class GeneratedAnswer:
    text: str
    context_text: str
    used_ids: List[str] = field(default_factory=list)


def pick_output_rule(rules: Sequence[OutputRule], scope: str) -> Optional[OutputRule]:
    """Highest-priority rule for `scope`, falling back to the "General" scope."""
    for wanted in (scope, "General"):
        candidates = [r for r in rules if r.scope.strip().lower() == (wanted or "").strip().lower()]
        if candidates:
            return max(candidates, key=lambda r: r.priority)
    return None


def build_hotel_block(hotel: Optional[HotelRecord]) -> str:
    if hotel is None:
        return "HOTEL CORE:\n(no verified hotel record)"
    lines = [f"{key}: {value}" for key, value in hotel.core_fields().items()]
    return "HOTEL CORE:\n" + "\n".join(lines)


def build_records_block(records: Sequence) -> str:
    if not records:
        return "HOTEL RECORDS:\n(none)"
    payload = [r.to_context() for r in records]
    return "HOTEL RECORDS:\n" + json.dumps(payload, ensure_ascii=False, indent=2)


def build_system_prompt(hotel: Optional[HotelRecord], rule: Optional[OutputRule], lang: str) -> str:
    prompt = SYSTEM_PROMPT.format(
        hotel_name=(hotel.name if hotel and hotel.name else "the hotel"),
        language=LANGUAGE_NAMES.get(lang, "English"),
    )
    if rule is None:
        return prompt

    sections = [prompt, "", f"OUTPUT STYLE ({rule.scope}):"]
    if rule.formatting:
        sections.append(f"Formatting: {rule.formatting}")
    if rule.style:
        sections.append(f"Style: {rule.style}")
    if rule.example:
        sections.append(f"Example output:\n{rule.example}")
    return "\n".join(sections)


class AnswerWriter:
    def __init__(self, llm, max_records: int = None, max_tokens: int = None):
        self.llm = llm
        self.max_records = max_records or settings.MAX_CONTEXT_RECORDS
        self.max_tokens = max_tokens or settings.GEMINI_MAX_TOKENS

    async def write_answer(
        self,
        question: str,
        hotel: Optional[HotelRecord],
        matched: Sequence,
        fallback: Sequence,
        rule: Optional[OutputRule],
        lang: str,
    ) -> GeneratedAnswer:
        # intent-matched records take priority over lexical fallback
        records = list(matched or fallback)[: self.max_records]
        context_text = f"{build_hotel_block(hotel)}\n\n{build_records_block(records)}"
        user_message = f"{context_text}\n\nGUEST QUESTION:\n{question}"

        text = await self.llm.generate_text(
            build_system_prompt(hotel, rule, lang),
            user_message,
            max_tokens=self.max_tokens,
        )
        logger.debug(f"Generated answer from {len(records)} records ({len(text or '')} chars)")
        return GeneratedAnswer(
            text=(text or "").strip(),
            context_text=context_text,
            used_ids=[r.id for r in records],
        )

"""
Intent Router
Resolves a visitor question to at most one known intent pattern.

Stages, first confident hit wins:
  1. Pre-router: fixed domain buckets (parking, breakfast, ...) matched by
     keyword; no model call, confidence 0.92.
  2. Gemini: picks one intent verbatim from the supplied list, or none.
  3. Heuristic: token overlap with synonyms, used when the model returns
     nothing, is unsure (< 0.35) or fails.
"""
import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from olly.config import settings
from olly.errors import LanguageModelError
from olly.knowledge.records import IntentPattern
from olly.knowledge.text import normalize, starts_any_word, token_set, tokenize

logger = logging.getLogger(__name__)

PRE_ROUTER_CONFIDENCE = 0.92
MIN_MODEL_CONFIDENCE = 0.35
MIN_HEURISTIC_SCORE = 2
PHRASES_PREVIEW_CHARS = 160

# Bucket keywords are matched at word starts, so stems cover inflections.
PRE_ROUTER_BUCKETS: List[Tuple[str, Tuple[str, ...]]] = [
    ("parking", ("parking", "parkir", "garage", "garaž", "garaz")),
    ("smoking", ("smoking", "smoke", "cigaret", "pušen", "pusen", "pušit", "pusit")),
    ("minibar", ("minibar", "mini bar")),
    ("breakfast", ("breakfast", "doručak", "dorucak", "doručk", "doruck")),
    ("transfer", ("transfer", "airport", "aerodrom", "zračn", "shuttle")),
    ("taxi", ("taxi", "taksi", "uber", "bolt")),
    ("directions", ("directions", "how to get", "how do i get", "kako doći", "kako doci", "upute")),
    ("tourist_tax", ("tourist tax", "city tax", "boravišn", "boravisn", "pristojb")),
    ("invoice", ("invoice", "faktur", "račun", "r1")),
    ("pets", ("pets", "pet friendly", "dogs", "ljubimc")),
    ("luggage", ("luggage", "baggage", "prtljag")),
]

# Token → extra tokens it implies for the heuristic stage.
SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "king": ("bed", "beds", "bed_type"),
    "queen": ("bed", "beds", "bed_type"),
    "twin": ("bed", "beds", "bed_type"),
    "bed": ("beds", "bed_type"),
    "beds": ("bed", "bed_type"),
    "krevet": ("bed", "beds", "bed_type"),
    "kreveti": ("bed", "beds", "bed_type"),
    "wifi": ("internet", "wifi", "wireless"),
    "wi": ("wifi", "internet"),
    "internet": ("wifi",),
    "wlan": ("wifi", "internet"),
    "lozinka": ("password", "wifi"),
    "password": ("wifi",),
    "pool": ("bazen", "swimming"),
    "bazen": ("pool",),
    "gym": ("fitness",),
    "fitness": ("gym",),
    "view": ("pogled",),
    "pogled": ("view",),
    "checkin": ("check", "in"),
    "checkout": ("check", "out"),
    "soba": ("room",),
    "sobe": ("room", "rooms"),
    "room": ("rooms", "soba"),
    "rooms": ("room", "sobe"),
}

CLASSIFIER_SYSTEM_PROMPT = """You are an intent classifier for a hotel website assistant.

You receive a guest question and a JSON list of known intents. Each intent has
example phrases and an output scope.

RULES:
1. Pick AT MOST ONE intent, copied verbatim from the "intent" values in the list.
2. If no intent clearly fits, return null for intent. Never invent a new label.
3. confidence is your certainty between 0.0 and 1.0.

Return ONLY valid JSON — no markdown, no explanation:
{
  "intent": "<intent from the list or null>",
  "confidence": <0.0 to 1.0>,
  "outputScope": "<output scope of the chosen intent or General>",
  "note": "<very short reason>"
}"""


@dataclass(frozen=True)
class IntentResult:
    intent: Optional[str] = None
    confidence: float = 0.0
    output_scope: str = "General"
    source: str = "none"
    pattern: Optional[IntentPattern] = None
    note: str = ""

    def as_meta(self) -> dict:
        return {
            "intent": self.intent,
            "confidence": round(self.confidence, 3),
            "intent_source": self.source,
            "output_scope": self.output_scope,
        }


NO_INTENT = IntentResult()


def _accept(pattern: IntentPattern, confidence: float, source: str, note: str = "") -> IntentResult:
    return IntentResult(
        intent=pattern.intent,
        confidence=confidence,
        output_scope=pattern.output_scope or "General",
        source=source,
        pattern=pattern,
        note=note,
    )


def pre_route(question: str, patterns: Sequence[IntentPattern]) -> Optional[IntentResult]:
    """Deterministic bucket routing. Ties go to the first pattern seen."""
    text = normalize(question)
    for bucket, keywords in PRE_ROUTER_BUCKETS:
        if not starts_any_word(text, keywords):
            continue
        best, best_score = None, 0
        for pattern in patterns:
            haystack = normalize(pattern.match_text())
            score = sum(1 for kw in keywords if normalize(kw) and normalize(kw) in haystack)
            if score > best_score:
                best, best_score = pattern, score
        if best is not None:
            logger.debug(f"Pre-router bucket '{bucket}' → {best.intent} (score {best_score})")
            return _accept(best, PRE_ROUTER_CONFIDENCE, "pre_router", f"bucket:{bucket}")
    return None


def expand_tokens(tokens: Sequence[str]) -> set:
    expanded = set(tokens)
    for tok in tokens:
        expanded.update(SYNONYMS.get(tok, ()))
    return expanded


def heuristic_route(question: str, patterns: Sequence[IntentPattern]) -> Optional[IntentResult]:
    tokens = tokenize(question)
    if not tokens:
        return None
    expanded = expand_tokens(tokens)
    first = tokens[0]

    best, best_score = None, 0
    for pattern in patterns:
        pattern_tokens = token_set(pattern.match_text())
        # intent names like "bed_type" also count as a whole token
        pattern_tokens.add(pattern.intent.lower())
        score = len(expanded & pattern_tokens)
        if first in token_set(pattern.intent):
            score += 1
        if score > best_score:
            best, best_score = pattern, score

    if best is None or best_score < MIN_HEURISTIC_SCORE:
        return None
    confidence = min(0.85, 0.55 + 0.05 * best_score)
    return _accept(best, confidence, "heuristic", f"score:{best_score}")


def build_classifier_message(question: str, patterns: Sequence[IntentPattern]) -> str:
    catalogue = [
        {
            "intent": p.intent,
            "phrases": p.phrases[:PHRASES_PREVIEW_CHARS],
            "outputScope": p.output_scope,
        }
        for p in patterns
    ]
    return (
        f"GUEST QUESTION:\n{question}\n\n"
        f"KNOWN INTENTS:\n{json.dumps(catalogue, ensure_ascii=False, indent=2)}"
    )


class IntentRouter:
    def __init__(self, llm, max_tokens: int = None):
        self.llm = llm
        self.max_tokens = max_tokens or settings.GEMINI_CLASSIFIER_MAX_TOKENS

    async def route(self, question: str, patterns: Sequence[IntentPattern]) -> IntentResult:
        if not patterns:
            return NO_INTENT

        result = pre_route(question, patterns)
        if result:
            return result

        result = await self._classify_with_model(question, patterns)
        if result:
            return result

        return heuristic_route(question, patterns) or NO_INTENT

    async def _classify_with_model(
        self, question: str, patterns: Sequence[IntentPattern]
    ) -> Optional[IntentResult]:
        try:
            data = await self.llm.generate_json(
                CLASSIFIER_SYSTEM_PROMPT,
                build_classifier_message(question, patterns),
                max_tokens=self.max_tokens,
            )
        except LanguageModelError as e:
            logger.warning(f"Intent classification failed, using heuristic fallback: {e}")
            return None

        label = str(data.get("intent") or "").strip()
        if not label:
            return None

        by_name = {p.intent: p for p in patterns}
        pattern = by_name.get(label)
        if pattern is None:
            logger.warning(f"Model returned unknown intent '{label}', discarded")
            return None

        try:
            confidence = float(data.get("confidence") or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0
        if confidence < MIN_MODEL_CONFIDENCE:
            logger.debug(f"Model intent '{label}' below threshold ({confidence:.2f})")
            return None

        return _accept(pattern, min(confidence, 1.0), "llm", str(data.get("note") or ""))

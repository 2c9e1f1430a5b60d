"""
Answer Pipeline Orchestrator
Runs one visitor question through the guards, renderers and agents.

Execution order:
  Stage 1: Rate limiter (per caller identity)
  Stage 2 (parallel): hotel record + web-visible rooms
  Stage 3: Deterministic renderers (no model call when one claims the question)
  Stage 4: Intent routing (pre-router → Gemini → heuristic)
  Stage 5: Knowledge retrieval + hard stop
  Stage 6: Grounded answer generation + price guard
"""
import asyncio
import logging
import time
from typing import Any, Dict, Optional

from olly.agents.answer_writer import AnswerWriter, pick_output_rule
from olly.agents.intent_router import NO_INTENT, IntentRouter
from olly.config import settings
from olly.errors import LanguageModelOverloaded, MissingQuestionError
from olly.knowledge.retriever import KnowledgeRetriever
from olly.pipeline.guards import RateLimiter, should_hard_stop, violates_price_guard
from olly.pipeline.messages import message, resolve_language
from olly.pipeline.renderers import dispatch

logger = logging.getLogger(__name__)


class HotelAssistant:
    def __init__(
        self,
        retriever: KnowledgeRetriever,
        llm,
        rate_limiter: RateLimiter = None,
        default_hotel: str = None,
    ):
        self.retriever = retriever
        self.llm = llm
        self.router = IntentRouter(llm)
        self.writer = AnswerWriter(llm)
        self.rate_limiter = rate_limiter or RateLimiter()
        self.default_hotel = default_hotel or settings.DEFAULT_HOTEL_SLUG

    async def answer(
        self,
        question: Optional[str],
        hotel_slug: Optional[str] = None,
        caller: Optional[str] = None,
        lang: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Answer one question. Returns {"ok", "answer", "meta"}.
        Raises MissingQuestionError on empty input and KnowledgeSourceError
        when the knowledge source is unreachable.
        """
        started = time.perf_counter()
        question = (question or "").strip()
        if not question:
            raise MissingQuestionError("question is required")

        slug = (hotel_slug or self.default_hotel).strip()
        lang = resolve_language(question, lang)
        meta: Dict[str, Any] = {
            "hotel": slug,
            "language": lang,
            **NO_INTENT.as_meta(),
            "renderer": None,
            "used_records": [],
            "fallback_used": False,
            "hard_stop": False,
            "price_guard": False,
            "rate_limited": False,
            "model_overloaded": False,
        }

        def finish(ok: bool, text: str) -> Dict[str, Any]:
            meta["elapsed_ms"] = int((time.perf_counter() - started) * 1000)
            logger.info(
                f"[{slug}] ok={ok} intent={meta['intent']} source={meta['intent_source']} "
                f"renderer={meta['renderer']} records={len(meta['used_records'])} "
                f"({meta['elapsed_ms']} ms)"
            )
            return {"ok": ok, "answer": text, "meta": meta}

        # ── Stage 1: Rate limiter ────────────────────────────────────────
        if caller and not self.rate_limiter.hit(caller):
            logger.warning(f"Rate limit exceeded for {caller}")
            meta["rate_limited"] = True
            return finish(False, message("rate_limited", lang))

        # ── Stage 2: Hotel + rooms ───────────────────────────────────────
        hotel, rooms = await asyncio.gather(
            self.retriever.get_hotel(slug),
            self.retriever.get_rooms_for_hotel(slug),
        )

        # ── Stage 3: Deterministic renderers ─────────────────────────────
        rendered = dispatch(question, hotel, rooms, lang)
        if rendered:
            meta["renderer"], text = rendered
            return finish(True, text)

        # ── Stage 4: Intent routing ──────────────────────────────────────
        patterns = await self.retriever.get_intent_patterns()
        intent = await self.router.route(question, patterns)
        meta.update(intent.as_meta())

        # ── Stage 5: Retrieval + hard stop ───────────────────────────────
        knowledge = await self.retriever.fetch_knowledge(slug, intent.intent, question, intent.pattern)
        meta["fallback_used"] = not knowledge.matched and bool(knowledge.fallback)
        if should_hard_stop(question, knowledge.hotel, knowledge.retrieved):
            logger.info(f"[{slug}] Hard stop: no verified data for a hotel-specific question")
            meta["hard_stop"] = True
            return finish(True, message("no_info", lang))

        # ── Stage 6: Generation + price guard ────────────────────────────
        rule = pick_output_rule(await self.retriever.get_output_rules(), intent.output_scope)
        try:
            generated = await self.writer.write_answer(
                question, knowledge.hotel, knowledge.matched, knowledge.fallback, rule, lang
            )
        except LanguageModelOverloaded as e:
            logger.warning(f"Language model overloaded: {e}")
            meta["model_overloaded"] = True
            return finish(False, message("rate_limited", lang))

        meta["used_records"] = generated.used_ids
        text = generated.text
        if violates_price_guard(text, generated.context_text):
            meta["price_guard"] = True
            text = message("no_price", lang)
        if not text:
            text = message("no_info", lang)
        return finish(True, text)

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from olly.errors import KnowledgeSourceError, MissingQuestionError
from olly.pipeline.messages import message, resolve_language
from olly.pipeline.orchestrator import HotelAssistant

logger = logging.getLogger(__name__)
router = APIRouter()


class ChatRequest(BaseModel):
    question: Optional[str] = None
    hotel: Optional[str] = None
    lang: Optional[str] = None


def get_assistant(request: Request) -> HotelAssistant:
    return request.app.state.assistant


def caller_identity(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop, else the client host."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.client.host if request.client else None


@router.post("")
async def chat(
    payload: ChatRequest,
    request: Request,
    assistant: HotelAssistant = Depends(get_assistant),
):
    try:
        result = await assistant.answer(
            payload.question,
            hotel_slug=payload.hotel,
            caller=caller_identity(request),
            lang=payload.lang,
        )
    except MissingQuestionError as e:
        return JSONResponse(status_code=400, content={"ok": False, "error": str(e)})
    except KnowledgeSourceError as e:
        logger.error(f"Knowledge source unavailable: {e}")
        return _server_error(payload)
    except Exception as e:
        logger.error(f"Answer pipeline failed: {e}", exc_info=True)
        return _server_error(payload)

    if result["meta"].get("rate_limited"):
        return JSONResponse(status_code=429, content=result)
    return result


def _server_error(payload: ChatRequest) -> JSONResponse:
    lang = resolve_language(payload.question or "", payload.lang)
    return JSONResponse(
        status_code=500,
        content={"ok": False, "answer": message("server_error", lang), "meta": {"language": lang}},
    )

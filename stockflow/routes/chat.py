"""
LLM chat endpoints: report discussion and general assistant chat, streamed.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from stockflow.agents.report_discussion import stream_assistant_answer, stream_report_answer
from stockflow.config import ConfigurationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


class ChatRequest(BaseModel):
    message: Optional[str] = None
    reportContext: Optional[str] = None
    conversationHistory: Optional[List[Dict[str, Any]]] = None
    messages: Optional[List[Dict[str, Any]]] = None


async def event_stream(chunks: AsyncIterator[str]) -> AsyncIterator[str]:
    try:
        async for chunk in chunks:
            if chunk:
                yield f"data: {json.dumps({'type': 'text', 'content': chunk})}\n\n"
        yield f"data: {json.dumps({'type': 'done'})}\n\n"
    except Exception as e:
        logger.error(f"Chat stream failed: {e}", exc_info=True)
        yield f"data: {json.dumps({'type': 'error', 'message': str(e)})}\n\n"


@router.post("/chat")
async def chat(body: ChatRequest):
    """
    Stream a chat answer.

    With `message` and `reportContext` the answer is grounded in the report
    the user is viewing; otherwise `messages` is treated as a general chat
    transcript.
    """
    try:
        if body.reportContext and body.message:
            chunks = stream_report_answer(body.message, body.reportContext, body.conversationHistory)
        else:
            chunks = stream_assistant_answer(body.messages or [])
    except ConfigurationError as e:
        logger.error(f"Chat unavailable: {e}")
        return JSONResponse(status_code=500, content={"success": False, "error": "API key not configured"})

    return StreamingResponse(event_stream(chunks), media_type="text/event-stream")

"""
Per-session agent endpoints.

A browser session is identified by the X-Session-ID header (or `sessionId`
in the body). The first remix request for a session clones the template
agent; later requests for the same session return the same clone.
"""

import asyncio
import logging
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, Header, Query, Request, Response
from pydantic import BaseModel

from stockflow.agents.agent_job import JobStatus
from stockflow.agents.response_extraction import extract_final_response
from stockflow.agents.session_provisioner import SessionRegistry
from stockflow.clients.remoteagent_client import RemoteAgentClient
from stockflow.config import InvalidRequest
from stockflow.routes.deps import get_remote_agent_client, get_session_registry, run_until_disconnect

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agents", tags=["agents"])


class RemixRequest(BaseModel):
    sessionId: Optional[str] = None


class AgentChatRequest(BaseModel):
    agentName: Optional[str] = None
    message: Optional[str] = None


@router.post("/remix")
async def ensure_session_agent(
    response: Response,
    body: Optional[RemixRequest] = None,
    x_session_id: Optional[str] = Header(None),
    registry: SessionRegistry = Depends(get_session_registry),
):
    session_id = x_session_id or (body.sessionId if body else None) or str(uuid4())
    response.headers["X-Session-ID"] = session_id

    agent = await registry.ensure_session_agent(session_id)
    logger.info(f"Session {session_id} uses agent {agent.name}")

    return {
        "success": True,
        "sessionId": session_id,
        "agent": {
            "name": agent.name,
            "state": agent.state,
            "parent_agent_name": agent.parent_agent_name,
            "created_at": agent.created_at,
        },
    }


@router.get("/remix")
async def session_agent_info(
    name: Optional[str] = Query(None),
    client: RemoteAgentClient = Depends(get_remote_agent_client),
):
    if not name:
        raise InvalidRequest("Agent name required")

    agent = await asyncio.to_thread(client.get_agent, name)
    return {
        "success": True,
        "agent": {
            "name": agent.name,
            "state": agent.state,
            "parent_agent_name": agent.parent_agent_name,
            "created_at": agent.created_at,
            "last_activity_at": agent.last_activity_at,
        },
    }


@router.post("/chat")
async def chat_with_agent(
    body: AgentChatRequest,
    request: Request,
    client: RemoteAgentClient = Depends(get_remote_agent_client),
):
    """Blocking chat turn with a (session) agent."""
    if not body.agentName or not body.message:
        raise InvalidRequest("Agent name and message are required")

    job = await run_until_disconnect(request, client.create_response, body.agentName, body.message)

    result = {
        "success": job.status == JobStatus.COMPLETED,
        "response": {
            "id": job.id,
            "status": job.status.value,
            "text": extract_final_response(job),
            "output_content": [item.model_dump() for item in job.output_content],
            "segments": [segment.model_dump() for segment in job.segments],
            "created_at": job.created_at,
            "updated_at": job.updated_at,
        },
    }
    if job.status != JobStatus.COMPLETED:
        logger.warning(f"Agent {body.agentName} response {job.id} ended {job.status.value}")
        result["error"] = "Sorry, the agent could not complete this request. Please try again."
    return result

"""
Remote agent endpoints: blocking chat, background analysis, polling and
platform configuration.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stockflow.agents.agent_job import JobStatus
from stockflow.agents.response_extraction import extract_final_response
from stockflow.clients.remoteagent_client import RemoteAgentClient
from stockflow.config import Config, InvalidRequest
from stockflow.routes.deps import get_remote_agent_client, run_until_disconnect

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/remoteagent", tags=["remoteagent"])


class MessageRequest(BaseModel):
    message: Optional[str] = None
    agentName: Optional[str] = None


class PollRequest(BaseModel):
    responseId: Optional[str] = None
    agentName: Optional[str] = None


class AnalyzeRequest(BaseModel):
    prompt: Optional[str] = None
    symbol: Optional[str] = None


@router.post("")
async def send_message(
    body: MessageRequest,
    request: Request,
    client: RemoteAgentClient = Depends(get_remote_agent_client),
):
    """Send a message to an agent and wait for its final response."""
    if not body.message or not body.message.strip():
        raise InvalidRequest("Message is required and must be a string")
    if not body.agentName or not body.agentName.strip():
        raise InvalidRequest("Agent name is required and must be a string")

    logger.info(f"Sending message to agent {body.agentName} ({len(body.message)} chars)")
    job = await run_until_disconnect(request, client.create_response, body.agentName, body.message)

    result = {
        "success": job.status == JobStatus.COMPLETED,
        "responseId": job.id,
        "status": job.status.value,
        "agentName": job.agent_name or body.agentName,
        "finalResponse": extract_final_response(job),
        "isComplete": True,
        "message": "Response completed successfully.",
    }
    if job.status != JobStatus.COMPLETED:
        logger.warning(f"Agent {body.agentName} response {job.id} ended {job.status.value}")
        result["message"] = f"Agent response {job.status.value}."
        result["error"] = "Sorry, the agent could not complete this request. Please try again."
    return result


@router.get("")
def list_published_agents(client: RemoteAgentClient = Depends(get_remote_agent_client)):
    agents = client.list_published_agents()
    return {
        "success": True,
        "agents": [
            {
                "name": agent.name,
                "description": agent.description,
                "state": agent.state,
                "createdBy": agent.created_by,
                "tags": agent.tags,
            }
            for agent in agents
        ],
    }


@router.post("/poll")
def poll(body: PollRequest, client: RemoteAgentClient = Depends(get_remote_agent_client)):
    """Return one snapshot of a background job."""
    if not body.responseId:
        raise InvalidRequest("Response ID is required and must be a string")
    if not body.agentName:
        raise InvalidRequest("Agent name is required and must be a string")

    job = client.get_response(body.agentName, body.responseId)
    if job is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Response not found or not ready yet"},
        )

    result = {
        "success": True,
        "responseId": job.id,
        "status": job.status.value,
        "agentName": job.agent_name,
        "createdAt": job.created_at,
        "updatedAt": job.updated_at,
        "isComplete": job.is_terminal,
    }
    if job.status == JobStatus.COMPLETED:
        result["finalResponse"] = extract_final_response(job)
    elif job.is_terminal:
        result["error"] = f"Agent response {job.status.value}"
    return result


@router.post("/analyze")
async def analyze(body: AnalyzeRequest, client: RemoteAgentClient = Depends(get_remote_agent_client)):
    """Run a stock analysis prompt on the default agent (background create + poll)."""
    if not body.prompt or not body.prompt.strip():
        raise InvalidRequest("Prompt is required")

    agent_name = client.config.default_agent_name

    def run():
        handle = client.create_response(agent_name, body.prompt, background=True)
        if handle.is_terminal:
            return handle
        return client.poll_response(
            agent_name,
            handle.id,
            on_status_update=lambda job: logger.info(f"Analysis {job.id} status: {job.status.value}"),
        )

    job = await asyncio.to_thread(run)
    return {
        "success": True,
        "analysis": extract_final_response(job),
        "responseId": job.id,
        "symbol": body.symbol,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "isComplete": True,
    }


@router.get("/config")
def remote_agent_config():
    """Public configuration summary; never includes the token."""
    return {
        "success": True,
        "defaultAgentName": Config.REMOTEAGENT_AGENT_NAME or None,
        "isConfigured": Config.is_remote_agent_configured(),
        "baseUrl": Config.REMOTEAGENT_BASE_URL or None,
    }

"""
Canvas file endpoints: list and read files published by an agent's workspace.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from stockflow.clients.remoteagent_client import RemoteAgentClient, RemoteAgentError
from stockflow.config import Config
from stockflow.routes.deps import get_remote_agent_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agent-files", tags=["agent-files"])


@router.get("/list")
async def list_files(
    path: str = Query(""),
    client: RemoteAgentClient = Depends(get_remote_agent_client),
):
    data = await asyncio.to_thread(client.list_files, client.config.canvas_agent_name, path)
    return {"success": True, **data}


@router.get("/read")
async def read_file(
    agent: Optional[str] = Query(None),
    path: str = Query("report.html"),
    client: RemoteAgentClient = Depends(get_remote_agent_client),
):
    agent_name = agent or client.config.canvas_agent_name
    try:
        content = await asyncio.to_thread(client.read_file, agent_name, path)
    except RemoteAgentError as e:
        if e.status_code != 404:
            raise
        return JSONResponse(
            status_code=404,
            content={
                "success": False,
                "error": "File not found or empty",
                "details": e.message,
                "agentName": agent_name,
                "filePath": path,
                "pathsAttempted": getattr(e, "paths_attempted", []),
            },
        )
    return {"success": True, "content": content}


@router.get("/debug")
async def debug():
    """Configuration summary plus a probe of the canvas agent's public report."""
    results = {
        "config": {
            "canvasAgentName": Config.REMOTEAGENT_CANVAS_AGENT_NAME,
            "chatAgentName": Config.REMOTEAGENT_AGENT_NAME,
            "baseUrl": Config.REMOTEAGENT_BASE_URL,
            "hasToken": bool(Config.REMOTEAGENT_TOKEN),
        },
        "tests": {},
    }

    if not Config.REMOTEAGENT_CANVAS_AGENT_NAME or not Config.is_remote_agent_configured():
        return {"success": False, "error": "Missing environment variables", "results": results}

    client = RemoteAgentClient(Config.remote_agent_config())
    results["tests"]["stockReport"] = await asyncio.to_thread(
        client.probe_public_file, client.config.canvas_agent_name
    )
    return {"success": True, "results": results}

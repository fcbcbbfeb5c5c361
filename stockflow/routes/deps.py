"""
Shared route dependencies.

The remote agent client and the session registry are built lazily on first
use (configuration is validated then, not at import) and kept on app.state.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, TypeVar

from fastapi import Depends, Request

from stockflow.agents.session_provisioner import SessionRegistry
from stockflow.clients.remoteagent_client import RemoteAgentClient, RequestCancelled
from stockflow.config import Config

logger = logging.getLogger(__name__)

T = TypeVar("T")

DISCONNECT_CHECK_SECONDS = 0.5


def get_remote_agent_client(request: Request) -> RemoteAgentClient:
    client = getattr(request.app.state, "remote_agent_client", None)
    if client is None:
        client = RemoteAgentClient(Config.remote_agent_config())
        request.app.state.remote_agent_client = client
    return client


def get_session_registry(
    request: Request,
    client: RemoteAgentClient = Depends(get_remote_agent_client),
) -> SessionRegistry:
    registry = getattr(request.app.state, "session_registry", None)
    if registry is None:
        registry = SessionRegistry(client, client.config.session_template_agent)
        request.app.state.session_registry = registry
    return registry


def _consume_result(task: "asyncio.Future") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.info(f"Abandoned agent request finished with: {task.exception()}")


async def run_until_disconnect(request: Request, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run a blocking, cancellable client call in a worker thread.

    `func` must accept a `cancel_event` keyword. The event is set as soon as
    the HTTP client disconnects, which stops the create loop before its next
    attempt; the handler itself returns immediately with RequestCancelled.
    """
    cancel_event = threading.Event()
    task = asyncio.ensure_future(asyncio.to_thread(func, *args, cancel_event=cancel_event, **kwargs))

    while not task.done():
        await asyncio.wait({task}, timeout=DISCONNECT_CHECK_SECONDS)
        if task.done():
            break
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling pending agent request")
            cancel_event.set()
            task.add_done_callback(_consume_result)
            raise RequestCancelled("Client disconnected before the agent responded", 499)

    return task.result()

"""
Per-session agent provisioning.

Each browser session gets its own clone ("remix") of a template agent so that
canvas reports and chat history don't leak between users. The clone is
created lazily on first use and at most once per session, even when several
requests trigger it concurrently.

Naming: clones are called "<template>-<n>", where n is one more than the
highest existing suffix. The listing and the remix are not atomic, so two
sessions may compute the same name; the platform is the authority on
uniqueness and a collision surfaces as a failed provisioning attempt.
"""

import asyncio
import logging
import re
from enum import Enum
from typing import Dict, Iterable, Optional

from stockflow.agents.agent_job import SessionAgent
from stockflow.clients.remoteagent_client import RemoteAgentClient, RemoteAgentError

logger = logging.getLogger(__name__)


def next_session_agent_name(existing_names: Iterable[str], prefix: str) -> str:
    """
    Compute the next clone name for a template.

    Example:
        next_session_agent_name(["tpl-1", "tpl-2", "tpl-4", "other-9"], "tpl")
        # Returns: "tpl-5"
    """
    pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
    suffixes = [int(m.group(1)) for m in (pattern.match(n) for n in existing_names) if m]
    suffixes = [s for s in suffixes if s > 0]
    return f"{prefix}-{max(suffixes) + 1 if suffixes else 1}"


class ProvisioningState(str, Enum):
    UNPROVISIONED = "unprovisioned"
    PROVISIONING = "provisioning"
    READY = "ready"
    FAILED = "failed"


class SessionAgentProvisioner:
    """
    Ensures exactly one cloned agent exists for a session.

    State machine: UNPROVISIONED → PROVISIONING → READY. A failed attempt
    leaves the provisioner in FAILED; there is no retry path, the session has
    to be recreated.
    """

    def __init__(self, client: RemoteAgentClient, template_agent: str):
        self._client = client
        self.template_agent = template_agent
        self.state = ProvisioningState.UNPROVISIONED
        self.agent: Optional[SessionAgent] = None
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    async def ensure_provisioned(self) -> SessionAgent:
        """Return the session agent, creating it on the first call only."""
        async with self._lock:
            if self._task is None:
                self.state = ProvisioningState.PROVISIONING
                self._task = asyncio.ensure_future(self._provision())
            task = self._task
        return await asyncio.shield(task)

    async def _provision(self) -> SessionAgent:
        try:
            name = await self._next_name()
            logger.info(f"Creating session agent {name} from {self.template_agent}")
            try:
                agent = await asyncio.to_thread(self._client.remix_agent, self.template_agent, name)
            except RemoteAgentError as e:
                if e.status_code == 409:
                    logger.warning(f"Session agent name collision on {name}; not retrying: {e.message}")
                raise
        except Exception:
            self.state = ProvisioningState.FAILED
            logger.error(f"Provisioning session agent from {self.template_agent} failed", exc_info=True)
            raise

        self.agent = agent
        self.state = ProvisioningState.READY
        logger.info(f"Session agent {agent.name} ready")
        return agent

    async def _next_name(self) -> str:
        try:
            existing = await asyncio.to_thread(self._client.list_agents, self.template_agent)
        except RemoteAgentError as e:
            logger.error(f"Failed to list agents for {self.template_agent}: {e.message}; starting numbering at 1")
            existing = []
        return next_session_agent_name((a.name for a in existing), self.template_agent)


class SessionRegistry:
    """In-memory map of session id → provisioner."""

    def __init__(self, client: RemoteAgentClient, template_agent: str):
        self._client = client
        self._template_agent = template_agent
        # ⚠️ Grows for the life of the process, failed sessions included.
        # For production, use Redis or a database with TTL
        self._provisioners: Dict[str, SessionAgentProvisioner] = {}

    def provisioner(self, session_id: str) -> SessionAgentProvisioner:
        if session_id not in self._provisioners:
            self._provisioners[session_id] = SessionAgentProvisioner(self._client, self._template_agent)
        return self._provisioners[session_id]

    async def ensure_session_agent(self, session_id: str) -> SessionAgent:
        return await self.provisioner(session_id).ensure_provisioned()

    def __len__(self) -> int:
        return len(self._provisioners)

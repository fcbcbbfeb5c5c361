"""
Remote agent platform client.

Submits prompts to named agents on the remote agent-hosting platform and
waits for their responses, hiding the asynchronous nature of the platform's
responses API from callers.

Key Features:
- Blocking response creation with a retry loop (fixed 10s delay, unbounded by default)
- Background creation plus wall-clock-bounded polling with de-duplicated status callbacks
- Agent listing and remixing (cloning) for per-session agents
- Workspace file listing and reading for canvas previews
- Bearer-token authentication from an explicit RemoteAgentConfig

Error taxonomy:
- ConfigurationError: required settings absent (fatal)
- RemoteAgentError: non-2xx, malformed JSON or transport failure on a non-retried call
- PollingTimeout: poll budget exhausted without a terminal status
- RequestCancelled: caller cancelled the blocking create loop
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, ValidationError

from stockflow.agents.agent_job import AgentJob, JobStatus, PublishedAgent, SessionAgent
from stockflow.config import ConfigurationError, InvalidRequest, RemoteAgentConfig

logger = logging.getLogger(__name__)


class RemoteAgentError(Exception):
    """Failure talking to the agent platform; carries the HTTP status when known."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PollingTimeout(RemoteAgentError):
    def __init__(self, job_id: str, elapsed: float, last_status: Optional[JobStatus] = None):
        status = last_status.value if last_status else "unknown"
        super().__init__(
            f"Response {job_id} polling timed out after {elapsed:.0f}s (last status: {status})"
        )
        self.job_id = job_id
        self.elapsed = elapsed
        self.last_status = last_status


class RequestCancelled(RemoteAgentError):
    pass


class RetryBudgetExhausted(RemoteAgentError):
    pass


class RetryPolicy(BaseModel):
    """
    Wait schedule for the blocking create loop.

    The defaults retry forever every `delay` seconds. Setting `backoff` > 1
    grows the delay geometrically (capped by `max_delay`); `max_attempts`
    and `max_elapsed` put a ceiling on the loop.
    """

    model_config = ConfigDict(frozen=True)

    delay: float = 10.0
    backoff: float = 1.0
    max_delay: Optional[float] = None
    max_attempts: Optional[int] = None
    max_elapsed: Optional[float] = None

    def delay_for(self, attempt: int) -> float:
        wait = self.delay * (self.backoff ** max(attempt - 1, 0))
        if self.max_delay is not None:
            wait = min(wait, self.max_delay)
        return wait


StatusCallback = Callable[[AgentJob], None]


class RemoteAgentClient:
    """
    Client for the agent platform's REST API.

    Args:
        config: Explicit platform settings, built once at startup
        session: Optional requests.Session (injected in tests)

    Example:
        client = RemoteAgentClient(Config.remote_agent_config())
        job = client.create_response("stock-analyst", "Summarize AAPL earnings")
        text = extract_final_response(job)
    """

    def __init__(self, config: RemoteAgentConfig, session: Optional[requests.Session] = None):
        missing = [
            name
            for name, value in (("REMOTEAGENT_BASE_URL", config.base_url), ("REMOTEAGENT_TOKEN", config.token))
            if not value
        ]
        if missing:
            raise ConfigurationError(missing)

        self.config = config
        self._session = session or requests.Session()
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "Content-Type": "application/json",
        }

    # ---------- TRANSPORT ----------
    def _send(self, method: str, url: str, *, timeout: Any = None, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        return self._session.request(
            method,
            url,
            headers={**self._headers, **(headers or {})},
            timeout=timeout or self.config.request_timeout_seconds,
            **kwargs,
        )

    @staticmethod
    def _error_from(response: requests.Response) -> RemoteAgentError:
        message = f"HTTP {response.status_code}: {response.reason}"
        try:
            data = response.json()
            if isinstance(data, dict) and (data.get("message") or data.get("error")):
                message = str(data.get("message") or data.get("error"))
        except ValueError:
            pass  # keep the status line
        return RemoteAgentError(message, response.status_code)

    @staticmethod
    def _parse_json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteAgentError(f"Malformed JSON from agent platform: {e}", 502) from e

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        url = f"{self.config.api_url}{endpoint}"
        try:
            response = self._send(method, url, **kwargs)
        except requests.RequestException as e:
            raise RemoteAgentError(f"Request to {endpoint} failed: {e}") from e

        if not response.ok:
            raise self._error_from(response)
        return self._parse_json(response)

    @staticmethod
    def _to_job(data: Any) -> AgentJob:
        try:
            return AgentJob.model_validate(data)
        except ValidationError as e:
            raise RemoteAgentError(f"Malformed response payload: {e.error_count()} validation error(s)") from e

    # ---------- AGENTS ----------
    def list_published_agents(self) -> List[PublishedAgent]:
        data = self._request("GET", "/published/agents")
        items = data.get("items", []) if isinstance(data, dict) else data
        return [PublishedAgent.model_validate(item) for item in items or [] if isinstance(item, dict) and item.get("name")]

    def get_published_agent(self, name: str) -> PublishedAgent:
        return PublishedAgent.model_validate(self._request("GET", f"/published/agents/{name}"))

    def list_agents(self, query: str, limit: int = 100) -> List[SessionAgent]:
        """List agents whose name matches `query`."""
        data = self._request("GET", "/agents", params={"q": query, "limit": limit})
        items = data.get("items", []) if isinstance(data, dict) else data
        return [SessionAgent.model_validate(item) for item in items or [] if isinstance(item, dict) and item.get("name")]

    def get_agent(self, name: str) -> SessionAgent:
        return SessionAgent.model_validate(self._request("GET", f"/agents/{name}"))

    def remix_agent(self, parent_agent_name: str, new_agent_name: str) -> SessionAgent:
        """Clone `parent_agent_name` (code, env and content) under a new name."""
        data = self._request(
            "POST",
            f"/agents/{parent_agent_name}/remix",
            json={"name": new_agent_name, "code": True, "env": True, "content": True},
        )
        return SessionAgent.model_validate(data)

    # ---------- RESPONSES ----------
    def create_response(
        self,
        agent_name: str,
        prompt: str,
        background: bool = False,
        retry_policy: Optional[RetryPolicy] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AgentJob:
        """
        Submit a prompt to an agent.

        With background=False the call does not return until the job is
        terminal: any non-2xx status or network error is treated as the job
        still running, and the same creation call is retried after the
        policy's delay. With background=True a single call is made and the
        (possibly non-terminal) job handle is returned.

        Args:
            agent_name: Target agent
            prompt: Prompt text, submitted verbatim
            background: Return immediately with a job handle
            retry_policy: Wait schedule (default: fixed config delay, no ceiling)
            cancel_event: Set from another thread to abandon the retry loop

        Returns:
            AgentJob (terminal when background=False)

        Raises:
            InvalidRequest: Empty agent name or prompt
            RemoteAgentError: Malformed success payload, or any failure in background mode
            RequestCancelled: cancel_event was set while waiting
        """
        if not agent_name or not agent_name.strip():
            raise InvalidRequest("Agent name is required")
        if not prompt or not prompt.strip():
            raise InvalidRequest("Prompt is required")

        endpoint = f"/agents/{agent_name}/responses"
        body = {
            "input": {"content": [{"type": "text", "content": prompt}]},
            "background": background,
        }

        if background:
            job = self._to_job(self._request("POST", endpoint, json=body))
            logger.info(f"Background response {job.id} created for agent {agent_name}")
            return job

        policy = retry_policy or RetryPolicy(delay=self.config.create_retry_seconds)
        cancel_event = cancel_event or threading.Event()
        url = f"{self.config.api_url}{endpoint}"
        timeout = (self.config.request_timeout_seconds, self.config.blocking_timeout_seconds)
        started = time.monotonic()
        attempt = 0

        while True:
            if cancel_event.is_set():
                raise RequestCancelled(f"Request to agent {agent_name} cancelled after {attempt} attempt(s)")

            attempt += 1
            try:
                response = self._send("POST", url, json=body, timeout=timeout)
            except requests.RequestException as e:
                reason = f"network error: {e}"
            else:
                if response.ok:
                    job = self._to_job(self._parse_json(response))
                    logger.info(f"Agent {agent_name} responded after {attempt - 1} retries (status {job.status.value})")
                    break
                reason = f"status {response.status_code}"

            if policy.max_attempts is not None and attempt >= policy.max_attempts:
                raise RetryBudgetExhausted(f"Agent {agent_name} did not respond after {attempt} attempts ({reason})")

            wait = policy.delay_for(attempt)
            if policy.max_elapsed is not None and time.monotonic() - started + wait > policy.max_elapsed:
                raise RetryBudgetExhausted(f"Agent {agent_name} did not respond within {policy.max_elapsed:.0f}s ({reason})")

            logger.info(f"Attempt {attempt}: agent {agent_name} still processing ({reason}), retrying in {wait:.0f}s")
            if cancel_event.wait(wait):
                raise RequestCancelled(f"Request to agent {agent_name} cancelled after {attempt} attempt(s)")

        if job.is_terminal:
            return job

        logger.info(f"Response {job.id} returned as {job.status.value}; polling until terminal")
        return self.poll_response(agent_name, job.id)

    def get_response(self, agent_name: str, job_id: str) -> Optional[AgentJob]:
        """
        Fetch the current snapshot of a job.

        Returns None when the lookup fails (not yet visible, transient error);
        callers should keep waiting rather than treat that as failure.
        """
        try:
            return self._to_job(self._request("GET", f"/agents/{agent_name}/responses/{job_id}"))
        except RemoteAgentError as e:
            logger.info(f"Response {job_id} for agent {agent_name} not available yet: {e.message}")
            return None

    def poll_response(
        self,
        agent_name: str,
        job_id: str,
        max_wait_time: Optional[float] = None,
        poll_interval: Optional[float] = None,
        on_status_update: Optional[StatusCallback] = None,
    ) -> AgentJob:
        """
        Poll a job until it reaches a terminal status.

        Args:
            agent_name: Agent that owns the job
            job_id: Job identifier
            max_wait_time: Wall-clock budget in seconds (default 15 minutes)
            poll_interval: Seconds between polls (default 2)
            on_status_update: Called once per distinct status observed

        Raises:
            PollingTimeout: Budget exhausted without a terminal status
        """
        max_wait = self.config.max_wait_seconds if max_wait_time is None else max_wait_time
        interval = self.config.poll_interval_seconds if poll_interval is None else poll_interval

        started = time.monotonic()
        last_status: Optional[JobStatus] = None

        while True:
            job = self.get_response(agent_name, job_id)

            if job is not None:
                if last_status is not None and job.status.rank < last_status.rank:
                    logger.debug(f"Ignoring stale snapshot of {job_id} ({job.status.value} after {last_status.value})")
                else:
                    if job.status != last_status:
                        last_status = job.status
                        logger.info(f"Response {job_id} status: {job.status.value}")
                        if on_status_update:
                            on_status_update(job)
                    if job.is_terminal:
                        return job

            elapsed = time.monotonic() - started
            if elapsed >= max_wait:
                raise PollingTimeout(job_id, elapsed, last_status)

            time.sleep(min(interval, max_wait - elapsed))

    # ---------- WORKSPACE FILES ----------
    def list_files(self, agent_name: str, path: str = "") -> Dict[str, Any]:
        endpoint = f"/agents/{agent_name}/files/list"
        if path:
            endpoint = f"{endpoint}/{path.lstrip('/')}"
        data = self._request("GET", endpoint)
        return data if isinstance(data, dict) else {"items": data}

    def file_urls(self, agent_name: str, path: str) -> List[str]:
        """Candidate locations of a workspace file, public content URL first."""
        path = path.lstrip("/")
        return [
            f"{self.config.root_url}/content/{agent_name}/{path}",
            f"{self.config.api_url}/agents/{agent_name}/files/read/{path}",
            f"{self.config.api_url}/agents/{agent_name}/files/read/content/{path}",
        ]

    def read_file(self, agent_name: str, path: str = "report.html") -> str:
        """
        Read a file published by an agent's workspace.

        Tries each candidate URL in turn and returns the first non-blank body.

        Raises:
            RemoteAgentError: (404) when every location failed or was empty
        """
        last_error = ""
        urls = self.file_urls(agent_name, path)
        for url in urls:
            try:
                response = self._send(
                    "GET", url, headers={"Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"}
                )
            except requests.RequestException as e:
                logger.warning(f"Error fetching {url}: {e}")
                last_error = str(e)
                continue

            if not response.ok:
                last_error = f"{response.status_code}: {response.reason}"
                logger.debug(f"File not at {url} ({last_error})")
                continue

            if response.text and response.text.strip():
                logger.info(f"Loaded {path} for agent {agent_name} from {url} ({len(response.text)} chars)")
                return response.text
            last_error = "File exists but is empty"

        error = RemoteAgentError(f"File {path} not found or empty for agent {agent_name}: {last_error}", 404)
        error.paths_attempted = urls
        raise error

    def probe_public_file(self, agent_name: str, path: str = "stock_report.html") -> Dict[str, Any]:
        """Unauthenticated fetch of a public content file, for diagnostics."""
        url = self.file_urls(agent_name, path)[0]
        try:
            response = self._session.get(url, timeout=self.config.request_timeout_seconds)
        except requests.RequestException as e:
            return {"url": url, "error": str(e)}
        return {
            "url": url,
            "status": response.status_code,
            "contentLength": len(response.text),
            "contentPreview": response.text[:300],
        }

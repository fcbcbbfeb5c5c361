from unittest.mock import MagicMock

import pytest
import requests

from stockflow.config import RemoteAgentConfig
from stockflow.clients.remoteagent_client import RemoteAgentClient

API = "https://agents.example.com/api/v0"


def make_response(status_code=200, json_data=None, text=None, reason="OK"):
    """Minimal stand-in for requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = reason if response.ok else "Error"
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    response.text = text if text is not None else ("" if json_data is None else str(json_data))
    return response


def job_payload(status="completed", job_id="resp_1", **fields):
    return {"id": job_id, "agent_name": "stock-analyst", "status": status, **fields}


@pytest.fixture
def agent_config():
    return RemoteAgentConfig(
        base_url=API,
        token="test-token",
        default_agent_name="stock-analyst",
        canvas_agent_name="canvas-agent",
        session_template_agent="stock-performance-overview",
    )


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(agent_config, http):
    return RemoteAgentClient(agent_config, session=http)

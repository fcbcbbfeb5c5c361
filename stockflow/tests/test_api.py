import asyncio
import threading
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest
import requests
from fastapi.testclient import TestClient

from conftest import make_response
from stockflow.agents.agent_job import AgentJob, JobStatus, SessionAgent
from stockflow.clients.remoteagent_client import PollingTimeout, RemoteAgentClient, RemoteAgentError
from stockflow.config import Config
from stockflow.main import app
from stockflow.routes.deps import get_remote_agent_client


def agent_job(status="completed", **fields):
    return AgentJob.model_validate({"id": "resp_1", "agent_name": "stock-analyst", "status": status, **fields})


@pytest.fixture
def agent_client(agent_config):
    client = MagicMock(spec=RemoteAgentClient)
    client.config = agent_config
    return client


@pytest.fixture
def api(agent_client):
    for attr in ("remote_agent_client", "session_registry"):
        if hasattr(app.state, attr):
            delattr(app.state, attr)
    app.dependency_overrides[get_remote_agent_client] = lambda: agent_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    if hasattr(app.state, "session_registry"):
        delattr(app.state, "session_registry")


# ---------- MARKET DATA ----------
def test_missing_symbol_is_a_bad_request(api):
    response = api.get("/api/stocks/quote")

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Symbol parameter is required"}


def test_market_data_degrades_to_fallback(api):
    with patch("stockflow.clients.yfinance_client.yf.Ticker", side_effect=RuntimeError("blocked")):
        response = api.get("/api/stocks/statistics", params={"symbol": "msft"})

    assert response.status_code == 200
    assert response.json()["fallback"] is True
    assert response.json()["requestedSymbol"] == "MSFT"


def test_history_rows_with_missing_prices_are_dropped(api):
    frame = pd.DataFrame(
        {
            "Open": [float("nan"), 10.0, 11.0],
            "High": [11.0, 11.0, 12.0],
            "Low": [9.0, 9.5, 10.5],
            "Close": [10.0, 10.5, 11.5],
            "Volume": [100, 200, 300],
        },
        index=pd.date_range("2025-01-02", periods=3, freq="1D", tz="UTC"),
    )
    ticker = MagicMock()
    ticker.history.return_value = frame

    with patch("stockflow.clients.yfinance_client.yf.Ticker", return_value=ticker):
        response = api.get("/api/stocks/historical", params={"symbol": "AAPL", "period": "1mo"})

    assert response.status_code == 200
    assert [p["price"] for p in response.json()["data"]] == [10.5, 11.5]


def test_internal_value_error_is_a_server_error():
    with patch("stockflow.clients.yfinance_client.get_quote", side_effect=ValueError("cannot convert float NaN")):
        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.get("/api/stocks/quote", params={"symbol": "AAPL"})

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_empty_search(api):
    assert api.get("/api/stocks/search").json() == {"results": []}


def test_news_category_passed_through(api):
    with patch("stockflow.routes.news.yfinance_client.get_news", return_value={"success": True, "news": []}) as get_news:
        api.get("/api/news", params={"category": "crypto"})

    get_news.assert_called_once_with("crypto")


# ---------- REMOTE AGENT ----------
def test_send_message_blocks_until_final_response(api, agent_client):
    agent_client.create_response.return_value = agent_job(output={"text": "AAPL looks strong"})

    response = api.post("/api/remoteagent", json={"message": "Analyze AAPL", "agentName": "stock-analyst"})

    assert response.status_code == 200
    body = response.json()
    assert body["finalResponse"] == "AAPL looks strong"
    assert body["isComplete"] is True
    args, kwargs = agent_client.create_response.call_args
    assert args == ("stock-analyst", "Analyze AAPL")
    assert isinstance(kwargs["cancel_event"], threading.Event)


def test_send_message_requires_message(api, agent_client):
    response = api.post("/api/remoteagent", json={"agentName": "stock-analyst"})

    assert response.status_code == 400
    assert response.json()["success"] is False
    agent_client.create_response.assert_not_called()


def test_platform_errors_keep_their_status(api, agent_client):
    agent_client.create_response.side_effect = RemoteAgentError("Agent not found", 404)

    response = api.post("/api/agents/chat", json={"agentName": "missing", "message": "hi"})

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Agent not found"}


def test_send_message_reports_failed_job(api, agent_client):
    agent_client.create_response.return_value = agent_job("failed")

    body = api.post("/api/remoteagent", json={"message": "Analyze AAPL", "agentName": "stock-analyst"}).json()

    assert body["success"] is False
    assert body["status"] == "failed"
    assert body["message"] == "Agent response failed."
    assert body["error"]


def test_unreadable_platform_reply_is_a_bad_gateway(api, agent_config):
    http = MagicMock(spec=requests.Session)
    http.request.return_value = make_response(200, text="<html>gateway</html>")
    app.dependency_overrides[get_remote_agent_client] = lambda: RemoteAgentClient(agent_config, session=http)

    response = api.get("/api/remoteagent")

    assert response.status_code == 502
    assert response.json()["success"] is False


def test_disconnect_cancels_blocking_create(api, agent_config):
    http = MagicMock(spec=requests.Session)
    attempted = threading.Event()

    def busy(*args, **kwargs):
        attempted.set()
        return make_response(409)

    http.request.side_effect = busy
    agent = RemoteAgentClient(agent_config, session=http)
    create_response = agent.create_response
    seen = {"done": threading.Event()}

    def tracked_create(*args, cancel_event, **kwargs):
        seen["cancel_event"] = cancel_event
        try:
            return create_response(*args, cancel_event=cancel_event, **kwargs)
        finally:
            seen["done"].set()

    agent.create_response = tracked_create
    app.dependency_overrides[get_remote_agent_client] = lambda: agent

    async def disconnect_after_first_attempt(self):
        return await asyncio.to_thread(attempted.wait, 5)

    with patch("starlette.requests.Request.is_disconnected", disconnect_after_first_attempt):
        response = api.post("/api/remoteagent", json={"message": "Analyze AAPL", "agentName": "stock-analyst"})

    assert response.status_code == 499
    assert seen["cancel_event"].is_set()
    assert seen["done"].wait(5)
    assert http.request.call_count == 1


def test_list_published_agents(api, agent_client):
    from stockflow.agents.agent_job import PublishedAgent

    agent_client.list_published_agents.return_value = [
        PublishedAgent(name="stock-analyst", description="Equity research", created_by="ops", tags=["stocks"])
    ]

    response = api.get("/api/remoteagent")

    assert response.json()["agents"] == [
        {"name": "stock-analyst", "description": "Equity research", "state": None, "createdBy": "ops", "tags": ["stocks"]}
    ]


def test_poll_not_ready(api, agent_client):
    agent_client.get_response.return_value = None

    response = api.post("/api/remoteagent/poll", json={"responseId": "resp_1", "agentName": "stock-analyst"})

    assert response.status_code == 404


@pytest.mark.parametrize("status, complete", [("processing", False), ("completed", True), ("failed", True)])
def test_poll_snapshot(api, agent_client, status, complete):
    agent_client.get_response.return_value = agent_job(status, output={"text": "Report ready"})

    body = api.post("/api/remoteagent/poll", json={"responseId": "resp_1", "agentName": "stock-analyst"}).json()

    assert body["status"] == status
    assert body["isComplete"] is complete
    assert ("finalResponse" in body) is (status == "completed")


def test_analyze_timeout_maps_to_504(api, agent_client):
    agent_client.create_response.return_value = agent_job("pending")
    agent_client.poll_response.side_effect = PollingTimeout("resp_1", 900.0, JobStatus.PROCESSING)

    response = api.post("/api/remoteagent/analyze", json={"prompt": "Analyze TSLA", "symbol": "TSLA"})

    assert response.status_code == 504
    assert response.json()["responseId"] == "resp_1"
    assert "try again later" in response.json()["error"]


def test_analyze_uses_default_agent(api, agent_client):
    agent_client.create_response.return_value = agent_job("completed", output={"text": "Bullish"})

    body = api.post("/api/remoteagent/analyze", json={"prompt": "Analyze TSLA", "symbol": "TSLA"}).json()

    assert body["analysis"] == "Bullish"
    assert body["symbol"] == "TSLA"
    agent_client.create_response.assert_called_once_with("stock-analyst", "Analyze TSLA", background=True)
    agent_client.poll_response.assert_not_called()


def test_config_never_exposes_token(api, monkeypatch):
    monkeypatch.setattr(Config, "REMOTEAGENT_BASE_URL", "https://agents.example.com")
    monkeypatch.setattr(Config, "REMOTEAGENT_TOKEN", "super-secret")
    monkeypatch.setattr(Config, "REMOTEAGENT_AGENT_NAME", "stock-analyst")

    response = api.get("/api/remoteagent/config")

    assert response.json() == {
        "success": True,
        "defaultAgentName": "stock-analyst",
        "isConfigured": True,
        "baseUrl": "https://agents.example.com",
    }
    assert "super-secret" not in response.text


def test_missing_configuration_is_a_500(monkeypatch):
    monkeypatch.setattr(Config, "REMOTEAGENT_BASE_URL", None)
    monkeypatch.setattr(Config, "REMOTEAGENT_TOKEN", None)
    if hasattr(app.state, "remote_agent_client"):
        delattr(app.state, "remote_agent_client")

    response = TestClient(app).get("/api/remoteagent")

    assert response.status_code == 500
    assert "REMOTEAGENT_BASE_URL" in response.json()["missing"]


# ---------- SESSION AGENTS ----------
def test_remix_provisions_once_per_session(api, agent_client):
    agent_client.list_agents.return_value = [SessionAgent(name="stock-performance-overview-2")]
    agent_client.remix_agent.side_effect = lambda parent, name: SessionAgent(name=name, parent_agent_name=parent)

    first = api.post("/api/agents/remix", headers={"X-Session-ID": "session-1"})
    second = api.post("/api/agents/remix", json={"sessionId": "session-1"})

    assert first.headers["X-Session-ID"] == "session-1"
    assert first.json()["agent"]["name"] == "stock-performance-overview-3"
    assert second.json()["agent"]["name"] == "stock-performance-overview-3"
    assert agent_client.remix_agent.call_count == 1


def test_remix_generates_session_id(api, agent_client):
    agent_client.list_agents.return_value = []
    agent_client.remix_agent.side_effect = lambda parent, name: SessionAgent(name=name)

    response = api.post("/api/agents/remix")

    assert response.headers["X-Session-ID"]
    assert response.json()["sessionId"] == response.headers["X-Session-ID"]


def test_agent_info_requires_name(api):
    assert api.get("/api/agents/remix").status_code == 400


def test_agent_chat_returns_text_and_payload(api, agent_client):
    agent_client.create_response.return_value = agent_job(
        segments=[{"type": "tool_call", "text": "quote(AAPL)"}, {"type": "final", "text": "Up 2%"}]
    )

    body = api.post("/api/agents/chat", json={"agentName": "stock-performance-overview-1", "message": "How is AAPL?"}).json()

    assert body["response"]["text"] == "Up 2%"
    assert len(body["response"]["segments"]) == 2


def test_agent_chat_reports_unfinished_job(api, agent_client):
    agent_client.create_response.return_value = agent_job("cancelled")

    body = api.post("/api/agents/chat", json={"agentName": "stock-performance-overview-1", "message": "How is AAPL?"}).json()

    assert body["success"] is False
    assert body["response"]["status"] == "cancelled"
    assert body["error"]


# ---------- CANVAS FILES ----------
def test_read_file_defaults_to_canvas_agent(api, agent_client):
    agent_client.read_file.return_value = "<html></html>"

    body = api.get("/api/agent-files/read").json()

    assert body == {"success": True, "content": "<html></html>"}
    agent_client.read_file.assert_called_once_with("canvas-agent", "report.html")


def test_read_file_not_found(api, agent_client):
    error = RemoteAgentError("File report.html not found or empty", 404)
    error.paths_attempted = ["a", "b", "c"]
    agent_client.read_file.side_effect = error

    response = api.get("/api/agent-files/read", params={"agent": "session-agent-1"})

    assert response.status_code == 404
    assert response.json()["pathsAttempted"] == ["a", "b", "c"]
    assert response.json()["agentName"] == "session-agent-1"


def test_list_files(api, agent_client):
    agent_client.list_files.return_value = {"items": [{"name": "report.html"}]}

    body = api.get("/api/agent-files/list", params={"path": "reports"}).json()

    assert body == {"success": True, "items": [{"name": "report.html"}]}
    agent_client.list_files.assert_called_once_with("canvas-agent", "reports")


# ---------- CHAT / WEB ----------
def test_chat_without_llm_key(api, monkeypatch):
    monkeypatch.setattr(Config, "GOOGLE_API_KEY", None)

    response = api.post("/api/chat", json={"message": "Why?", "reportContext": "<p>report</p>"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "API key not configured"}


def test_chat_streams_report_answer(api):
    async def answer():
        yield "Revenue "
        yield "grew 8%."

    with patch("stockflow.routes.chat.stream_report_answer", return_value=answer()) as stream:
        response = api.post("/api/chat", json={
            "message": "How did revenue change?",
            "reportContext": "Revenue: +8%",
            "conversationHistory": [{"type": "user", "content": "Hi"}],
        })

    assert response.status_code == 200
    assert '"content": "Revenue "' in response.text
    assert '"type": "done"' in response.text
    stream.assert_called_once_with("How did revenue change?", "Revenue: +8%", [{"type": "user", "content": "Hi"}])


def test_fetch_html_requires_url(api):
    assert api.get("/api/fetch-html").status_code == 400

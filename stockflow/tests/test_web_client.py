from unittest.mock import MagicMock

import pytest
import requests

from stockflow.clients.web_client import FetchError, fetch_html
from stockflow.config import Config, InvalidRequest


def test_fetch_html_sends_browser_user_agent():
    session = MagicMock(spec=requests.Session)
    session.get.return_value = MagicMock(ok=True, text="<html>ok</html>")

    assert fetch_html("https://example.com", session=session) == "<html>ok</html>"
    assert session.get.call_args.kwargs["headers"]["User-Agent"] == Config.HTTP_USER_AGENT


def test_fetch_html_upstream_error_keeps_status():
    session = MagicMock(spec=requests.Session)
    session.get.return_value = MagicMock(ok=False, status_code=403, reason="Forbidden")

    with pytest.raises(FetchError) as excinfo:
        fetch_html("https://example.com", session=session)

    assert excinfo.value.status_code == 403


def test_fetch_html_network_error_is_a_500():
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = requests.ConnectionError("refused")

    with pytest.raises(FetchError) as excinfo:
        fetch_html("https://example.com", session=session)

    assert excinfo.value.status_code == 500


def test_fetch_html_requires_url():
    with pytest.raises(InvalidRequest):
        fetch_html("")

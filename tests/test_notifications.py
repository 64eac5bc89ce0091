"""Tests for chat notification sinks."""

import json

import httpx
import pytest

from alertbridge.notifications import AVAILABLE_SINKS, import_sink
from alertbridge.notifications.base import ChatNotification
from alertbridge.notifications.slack import SlackNotifier
from alertbridge.notifications.teams import TeamsNotifier, severity_color

NOTIFICATION = ChatNotification(
    title="Security Alert: SQL Injection",
    message="[SEC-1] high code_scanning alert in acme/api",
    severity="high",
    url="https://jira.test/browse/SEC-1",
)


class TestRegistry:
    def test_all_sinks_importable(self):
        for name, path in AVAILABLE_SINKS.items():
            sink = import_sink(path)()
            assert sink.sink_type == name


class TestPayloads:
    def test_slack_blocks(self):
        payload = SlackNotifier().build_payload(NOTIFICATION)
        assert payload["text"] == NOTIFICATION.title
        header, body, link = payload["blocks"]
        assert header["type"] == "header"
        assert NOTIFICATION.title in header["text"]["text"]
        assert body["text"]["text"] == NOTIFICATION.message
        assert "https://jira.test/browse/SEC-1" in link["text"]["text"]

    def test_slack_without_url(self):
        payload = SlackNotifier().build_payload(NOTIFICATION.model_copy(update={"url": None}))
        assert len(payload["blocks"]) == 2

    def test_teams_card(self):
        payload = TeamsNotifier().build_payload(NOTIFICATION)
        assert payload["@type"] == "MessageCard"
        assert payload["themeColor"] == "FFA500"
        assert payload["potentialAction"][0]["targets"][0]["uri"] == NOTIFICATION.url

    def test_severity_color(self):
        assert severity_color("critical") == "FF0000"
        assert severity_color("low") == "0076D7"


class TestSend:
    @pytest.mark.asyncio
    async def test_success(self):
        captured = []

        def handler(request):
            captured.append(request)
            return httpx.Response(200, text="ok")

        sink = SlackNotifier(transport=httpx.MockTransport(handler))
        assert await sink.send("https://hooks.slack.test/T000", NOTIFICATION) is True
        assert json.loads(captured[0].content)["text"] == NOTIFICATION.title

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        sink = TeamsNotifier(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        assert await sink.send("https://teams.test/hook", NOTIFICATION) is False

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        sink = SlackNotifier(transport=httpx.MockTransport(handler))
        assert await sink.send("https://hooks.slack.test/T000", NOTIFICATION) is False

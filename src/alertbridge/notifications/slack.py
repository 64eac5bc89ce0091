"""Slack incoming-webhook notifications (Block Kit)."""

from __future__ import annotations

from alertbridge.notifications.base import ChatNotification, NotificationSink

_SEVERITY_EMOJI: dict[str, str] = {
    "critical": "\U0001f534",  # 🔴
    "high": "\U0001f7e0",      # 🟠
    "medium": "\U0001f7e1",    # 🟡
    "low": "\U0001f7e2",       # 🟢
}


class SlackNotifier(NotificationSink):
    sink_type: str = "slack"

    def build_payload(self, notification: ChatNotification) -> dict:
        emoji = _SEVERITY_EMOJI.get(notification.severity, "❓")  # ❓ fallback
        blocks: list[dict] = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"{emoji} {notification.title}"[:150],
                    "emoji": True,
                },
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": notification.message},
            },
        ]
        if notification.url:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"<{notification.url}|View in Jira>"},
            })
        return {"text": notification.title, "blocks": blocks}

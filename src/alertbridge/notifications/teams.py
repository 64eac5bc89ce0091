"""Microsoft Teams incoming-webhook notifications (MessageCard)."""

from __future__ import annotations

from alertbridge.notifications.base import ChatNotification, NotificationSink


def severity_color(severity: str) -> str:
    if severity == "critical":
        return "FF0000"
    if severity == "high":
        return "FFA500"
    return "0076D7"


class TeamsNotifier(NotificationSink):
    sink_type: str = "teams"

    def build_payload(self, notification: ChatNotification) -> dict:
        actions = []
        if notification.url:
            actions.append({
                "@type": "OpenUri",
                "name": "View in Jira",
                "targets": [{"os": "default", "uri": notification.url}],
            })
        return {
            "@type": "MessageCard",
            "summary": notification.title,
            "themeColor": severity_color(notification.severity),
            "title": notification.title,
            "sections": [{"activityTitle": notification.message}],
            "potentialAction": actions,
        }

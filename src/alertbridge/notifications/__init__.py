"""Notification sink registry: maps sink name to a lazy-import class path."""

AVAILABLE_SINKS: dict[str, str] = {
    "slack": "alertbridge.notifications.slack.SlackNotifier",
    "teams": "alertbridge.notifications.teams.TeamsNotifier",
}


def import_sink(dotted_path: str):
    """Import a sink class from its dotted module path."""
    import importlib

    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)

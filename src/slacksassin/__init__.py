"""SlackSassin - webhook-driven Slack reply assistant."""

__version__ = "1.0.0"

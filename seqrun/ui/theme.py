"""Centralized CLI theme tokens."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CliTheme:
    """Semantic Rich color tokens for CLI output."""

    primary: str = "#E6EDF3"
    secondary: str = "#56B6C2"
    muted: str = "#7F848E"
    accent: str = "#61AFEF"
    success: str = "#98C379"
    warning: str = "#E5C07B"
    error: str = "#E06C75"

    def for_event(self, event: str) -> str:
        """Pick the color for one timeline entry (``start:A``, ``error:setup:...``)."""
        kind = event.split(":", 1)[0]
        return {
            "start": self.success,
            "cleanup": self.accent,
            "error": self.error,
            "submit": self.muted,
            "shutdown": self.warning,
        }.get(kind, self.primary)


THEME = CliTheme()

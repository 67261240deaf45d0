"""Template rendering for handlers (kida)."""

from perch.templating.view import View

__all__ = ["View"]

"""Request and response collaborators."""

from perch.http.request import Request
from perch.http.response import Response

__all__ = ["Request", "Response"]

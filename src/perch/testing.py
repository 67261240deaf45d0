"""Synchronous test client for perch dispatchers.

Runs a request through the same ``Dispatcher.start()`` the WSGI adapter
uses, with a fresh response and an in-memory output sink, and returns
everything a test wants to look at.
"""

from dataclasses import dataclass

from perch.dispatcher import Dispatcher, DispatchOutcome
from perch.http.request import Request
from perch.output import Output


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """What one test request produced.

    ``body`` is the response body the dispatcher assembled; ``output`` is
    everything that reached the sink (hook output, streamed chunks and
    the sent body, in order).
    """

    status: int
    headers: dict[str, str]
    body: str
    output: str
    outcome: DispatchOutcome | None
    real_headers: tuple[str, ...]

    def header(self, name: str, default: str | None = None) -> str | None:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Test client for perch dispatchers.

    Usage::

        client = TestClient(app)
        result = client.get("/hello/bob")
        assert result.status == 200
        assert result.body == "Hello, bob!"
    """

    __slots__ = ("dispatcher",)

    def __init__(self, dispatcher: Dispatcher) -> None:
        self.dispatcher = dispatcher

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> DispatchResult:
        """Dispatch *method* *url* and collect the result."""
        output = Output()
        self.dispatcher.reset(Request(method, url, dict(headers or {})), output=output)
        outcome = self.dispatcher.start()
        response = self.dispatcher.response
        return DispatchResult(
            status=response.status,
            headers=response.headers,
            body=response.body,
            output=output.getvalue(),
            outcome=outcome,
            real_headers=tuple(line for line, _, _ in response.real_headers),
        )

    def get(self, url: str, *, headers: dict[str, str] | None = None) -> DispatchResult:
        """Send a GET request."""
        return self.request("GET", url, headers=headers)

    def post(self, url: str, *, headers: dict[str, str] | None = None) -> DispatchResult:
        """Send a POST request."""
        return self.request("POST", url, headers=headers)

    def put(self, url: str, *, headers: dict[str, str] | None = None) -> DispatchResult:
        """Send a PUT request."""
        return self.request("PUT", url, headers=headers)

    def patch(self, url: str, *, headers: dict[str, str] | None = None) -> DispatchResult:
        """Send a PATCH request."""
        return self.request("PATCH", url, headers=headers)

    def delete(self, url: str, *, headers: dict[str, str] | None = None) -> DispatchResult:
        """Send a DELETE request."""
        return self.request("DELETE", url, headers=headers)

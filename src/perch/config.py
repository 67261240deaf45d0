"""Dispatcher configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Dispatcher configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(case_sensitive=True, handle_errors=True)
    """

    debug: bool = False

    # Routing
    case_sensitive: bool = False  # Match literal segments case-sensitively
    encode_url_params: bool = False  # Percent-encode values substituted by url_for

    # Output buffering
    # Legacy mode: capture everything echoed during a dispatch (hooks included)
    # and write it to the response body at stop time.
    v2_output_buffering: bool = False

    # Errors
    handle_errors: bool = False  # Render unhandled handler exceptions as a 500 page
    log_errors: bool = True

    # Response
    content_length: bool = True  # Emit Content-Length for non-empty bodies

    # Views
    views_path: str | Path = "views"
    views_extension: str = ".html"
    autoescape: bool = True

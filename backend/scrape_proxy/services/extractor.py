"""Response Extractor — picks the API response out of a page's network traffic.

Invariants:
    - Match is an exact, case-sensitive str.startswith on the full URL (no patterns)
    - Non-matching requests never have their body read
    - Parse failures are logged and treated as non-matches, never raised
    - Last writer wins: result is the last successfully decoded value in completion order
    - A JSON null body counts as no payload
    - NaN and Infinity literals are rejected (strict JSON only)

Design Decisions:
    - One extractor per render attempt: state never leaks between refreshes
    - Sentinel over None for "nothing yet": keeps "no match" distinct from decoded values
"""

import json
import logging
from typing import Any

from scrape_proxy.core.errors import ParseError
from scrape_proxy.core.renderer_protocols import BodyAccessor

logger = logging.getLogger(__name__)

_NOTHING = object()


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON value")


class ResponseExtractor:
    """Collects the JSON body of responses whose URL starts with a prefix."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.match_count = 0
        self.parse_failures = 0
        self._result: Any = _NOTHING

    def matches(self, url: str) -> bool:
        return url.startswith(self.prefix)

    @property
    def has_result(self) -> bool:
        return self._result is not _NOTHING

    @property
    def result(self) -> Any:
        return None if self._result is _NOTHING else self._result

    async def try_extract(self, url: str, body_accessor: BodyAccessor) -> Any:
        """Decode the body of a matching response; None for anything else."""
        if not self.matches(url):
            return None
        self.match_count += 1
        try:
            body = await body_accessor()
            if body is None:
                raise ParseError(url, "request has no response")
            return json.loads(body, parse_constant=_reject_constant)
        except ParseError as e:
            self._log_parse_failure(e)
        except (ValueError, UnicodeDecodeError) as e:
            # json.JSONDecodeError is a ValueError
            self._log_parse_failure(ParseError(url, str(e)))
        except Exception as e:
            self._log_parse_failure(ParseError(url, f"body unavailable: {e}"))
        return None

    async def on_request_finished(self, url: str, body_accessor: BodyAccessor) -> None:
        value = await self.try_extract(url, body_accessor)
        if value is None:
            return
        if self.has_result:
            logger.debug(
                "Replacing earlier matching response",
                extra={"url": url, "match_count": self.match_count},
            )
        self._result = value

    def _log_parse_failure(self, error: ParseError) -> None:
        self.parse_failures += 1
        logger.warning(error.message, extra=error.log_extra())

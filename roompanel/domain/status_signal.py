"""Status token mapping and display URL synchronisation.

A room display asserts the current status token in a query parameter of its
own URL. When the token in the requested URL is stale, the display redirects
to the URL carrying the fresh token before rendering, so an observer watching
navigation (the kiosk client) sees exactly one URL change per free/busy
transition.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlencode

DEFAULT_STATUS_PARAM = "rmspanel"


class StatusToken(str, Enum):
    """Discrete occupancy signal exposed to display clients."""

    FREE = "free"
    BUSY = "busy"


def status_for(is_free: bool) -> StatusToken:
    return StatusToken.FREE if is_free else StatusToken.BUSY


@dataclass(frozen=True)
class DisplaySync:
    """Outcome of comparing a display request against the fresh status."""

    token: StatusToken
    url_value: str
    redirect_to: Optional[str] = None

    @property
    def needs_redirect(self) -> bool:
        return self.redirect_to is not None


class StatusSignalMapper:
    """Maps status tokens to display URL values and plans sync redirects."""

    def __init__(
        self,
        param_name: str = DEFAULT_STATUS_PARAM,
        url_values: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initialize the mapper.

        Args:
            param_name: Query parameter carrying the token
            url_values: Optional overrides keyed by token value, e.g.
                ``{"free": "green", "busy": "red"}`` for clients that expect
                colour names. Unlisted tokens use their own value.

        Raises:
            ValueError: If two tokens would share one URL value
        """
        self.param_name = param_name
        overrides = dict(url_values or {})
        self._values = {token: overrides.get(token.value, token.value) for token in StatusToken}
        if len(set(self._values.values())) != len(self._values):
            raise ValueError(f"Status URL values must be distinct: {self._values}")
        self._tokens = {value: token for token, value in self._values.items()}

    def value_for(self, token: StatusToken) -> str:
        return self._values[token]

    def token_from_value(self, value: Optional[str]) -> Optional[StatusToken]:
        """Reverse lookup; unknown or missing values give None."""
        if value is None:
            return None
        return self._tokens.get(value)

    def canonical_url(self, path: str, token: StatusToken) -> str:
        """Display URL asserting ``token``."""
        return f"{path}?{urlencode({self.param_name: self.value_for(token)})}"

    def plan(self, path: str, query: Mapping[str, str], is_free: bool) -> DisplaySync:
        """Decide whether a display request must be redirected.

        The token is computed once per request. A request whose URL already
        carries the fresh token is rendered; any other request is redirected
        once to the canonical URL. The redirect target always carries the
        token computed here, so each request redirects at most once and the
        page that is finally rendered matches its own URL.

        Args:
            path: Path of the display route (without query string)
            query: Query parameters of the incoming request
            is_free: Freshly resolved occupancy

        Returns:
            DisplaySync with ``redirect_to`` set when a redirect is required
        """
        token = status_for(is_free)
        url_value = self.value_for(token)

        if query.get(self.param_name) == url_value:
            return DisplaySync(token=token, url_value=url_value)

        return DisplaySync(token=token, url_value=url_value, redirect_to=self.canonical_url(path, token))

"""Calendar fetcher for plain .ics feeds and CalDAV collections.

Two strategies are tried in order for every fetch:

1. A plain GET when the URL path ends in ``.ics``; a non-success status falls
   through to strategy 2.
2. A CalDAV ``REPORT`` calendar-query bounded to the requested day.

``CalendarFetcher.fetch`` is total: transport failures, bad status codes and
malformed payloads are logged and turned into an empty event list.
"""

import asyncio
import base64
import datetime
import logging
from dataclasses import dataclass
from string import Template
from typing import Optional
from urllib.parse import urlparse
from xml.etree.ElementTree import Element

import defusedxml.ElementTree as ET
import httpx
from defusedxml import DefusedXmlException

from ..core.http_client import DEFAULT_FETCH_TIMEOUT_SECONDS, build_timeout, get_shared_client
from ..core.timezone_utils import format_caldav_utc, get_local_timezone, start_of_day
from .ical_parser import IcalParser
from .models import CalendarEvent

logger = logging.getLogger(__name__)

DAY_WINDOW = datetime.timedelta(hours=24)

# Longest response body echoed into the log when a REPORT is rejected
MAX_LOGGED_BODY_CHARS = 500

DAV_NS = "DAV:"
CALDAV_NS = "urn:ietf:params:xml:ns:caldav"

REPORT_BODY_TEMPLATE = Template("""<?xml version="1.0" encoding="utf-8" ?>
<C:calendar-query xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:caldav">
  <D:prop>
    <D:getetag/>
    <C:calendar-data/>
  </D:prop>
  <C:filter>
    <C:comp-filter name="VCALENDAR">
      <C:comp-filter name="VEVENT">
        <C:time-range start="${start}"
                      end="${end}"/>
      </C:comp-filter>
    </C:comp-filter>
  </C:filter>
</C:calendar-query>""")


class CalendarFetchError(Exception):
    """Base exception for calendar fetch errors."""


class CalendarSourceUnreachableError(CalendarFetchError):
    """Network, DNS or timeout failure while contacting the calendar server."""


class MalformedCalendarPayloadError(CalendarFetchError):
    """Calendar server answered with a payload that cannot be parsed."""


@dataclass(frozen=True)
class MultistatusDialect:
    """Element names one family of CalDAV servers uses in a multistatus reply."""

    name: str
    dav_prefix: str
    calendar_data_tags: tuple[str, ...]

    def tag(self, local_name: str) -> str:
        return f"{self.dav_prefix}{local_name}"


# Tried in order. DAV-namespaced elements cover both the ``D:`` and ``d:``
# prefixes; unqualified elements cover servers that omit namespaces entirely.
MULTISTATUS_DIALECTS: tuple[MultistatusDialect, ...] = (
    MultistatusDialect(
        name="dav-namespace",
        dav_prefix=f"{{{DAV_NS}}}",
        calendar_data_tags=(
            f"{{{CALDAV_NS}}}calendar-data",
            "calendar-data",
            f"{{{DAV_NS}}}calendar-data",
        ),
    ),
    MultistatusDialect(
        name="unqualified",
        dav_prefix="",
        calendar_data_tags=("calendar-data", f"{{{CALDAV_NS}}}calendar-data"),
    ),
)


def build_basic_auth_header(username: Optional[str], password: Optional[str]) -> dict[str, str]:
    """Build the Basic ``Authorization`` header sent on every calendar request."""
    credentials = f"{username or ''}:{password or ''}"
    encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {encoded}"}


def build_report_body(start: datetime.datetime, end: datetime.datetime) -> str:
    """Render the calendar-query REPORT body for ``[start, end)``."""
    return REPORT_BODY_TEMPLATE.substitute(start=format_caldav_utc(start), end=format_caldav_utc(end))


def is_ics_url(url: str) -> bool:
    """Return True when the URL path names an .ics resource."""
    return urlparse(url).path.endswith(".ics")


def _element_text(element: Element) -> str:
    """Text of a calendar-data element, whether plain or split across children."""
    if len(element) == 0:
        return element.text or ""
    return "".join(element.itertext())


def extract_calendar_data(xml_text: str) -> list[str]:
    """Pull every calendar-data payload out of a CalDAV multistatus document.

    Raises:
        MalformedCalendarPayloadError: If the document is not well-formed XML
            or declares entities
    """
    try:
        root = ET.fromstring(xml_text)
    except (ET.ParseError, DefusedXmlException) as e:
        raise MalformedCalendarPayloadError(f"Invalid multistatus XML: {e}") from e

    for dialect in MULTISTATUS_DIALECTS:
        if root.tag != dialect.tag("multistatus"):
            continue

        responses = root.findall(dialect.tag("response"))
        if not responses:
            continue

        logger.debug("Multistatus matched dialect %s (%d responses)", dialect.name, len(responses))
        blobs = [_response_calendar_data(response, dialect) for response in responses]
        return [blob for blob in blobs if blob is not None]

    logger.debug("No multistatus dialect matched root element %s", root.tag)
    return []


def _response_calendar_data(response: Element, dialect: MultistatusDialect) -> Optional[str]:
    for propstat in response.findall(dialect.tag("propstat")):
        prop = propstat.find(dialect.tag("prop"))
        if prop is None:
            continue
        for tag in dialect.calendar_data_tags:
            calendar_data = prop.find(tag)
            if calendar_data is not None:
                return _element_text(calendar_data)
    return None


class CalendarFetcher:
    """Fetches one day of events from an .ics feed or CalDAV collection."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        tz: Optional[datetime.tzinfo] = None,
        honor_utc_marker: bool = False,
        filter_report_window: bool = False,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: Optional HTTP client; the shared pooled client is used when omitted
            timeout: Upper bound in seconds for a whole fetch
            tz: Local timezone for day windows and floating times
            honor_utc_marker: Passed to the ICal parser
            filter_report_window: Also day-filter events returned by REPORT
        """
        self._client = client
        self.timeout = timeout
        self.tz = tz or get_local_timezone()
        self.filter_report_window = filter_report_window
        self.parser = IcalParser(self.tz, honor_utc_marker)

    async def fetch(
        self,
        url: str,
        username: Optional[str],
        password: Optional[str],
        reference_date: datetime.datetime,
    ) -> list[CalendarEvent]:
        """Fetch the events of the day containing ``reference_date``.

        Never raises (cancellation excepted): every failure is logged and
        reported as an empty list.
        """
        try:
            return await asyncio.wait_for(
                self._fetch(url, username, password, reference_date), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error("Calendar fetch from %s exceeded %.1fs", url, self.timeout)
        except CalendarFetchError as e:
            logger.error("Calendar fetch from %s failed: %s", url, e)
        except Exception:
            logger.exception("Unexpected error fetching calendar from %s", url)
        return []

    async def _fetch(
        self,
        url: str,
        username: Optional[str],
        password: Optional[str],
        reference_date: datetime.datetime,
    ) -> list[CalendarEvent]:
        client = await self._get_client()
        headers = build_basic_auth_header(username, password)
        start = start_of_day(reference_date, self.tz)
        end = start + DAY_WINDOW

        if is_ics_url(url):
            events = await self._fetch_ics(client, url, headers, start, end)
            if events is not None:
                return events

        return await self._fetch_report(client, url, headers, start, end)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client("calendar_fetcher", timeout=build_timeout(self.timeout))

    async def _fetch_ics(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
        start: datetime.datetime,
        end: datetime.datetime,
    ) -> Optional[list[CalendarEvent]]:
        """GET an .ics feed; returns None when the server rejects the request."""
        logger.debug("Fetching .ics feed %s", url)
        response = await self._send(client, "GET", url, headers=headers)

        if not response.is_success:
            logger.warning("GET %s returned HTTP %d, trying CalDAV REPORT", url, response.status_code)
            return None

        events = self.parser.parse(response.text)
        in_window = filter_day_window(events, start, end)
        logger.debug("Parsed %d events from %s, %d in window", len(events), url, len(in_window))
        return in_window

    async def _fetch_report(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
        start: datetime.datetime,
        end: datetime.datetime,
    ) -> list[CalendarEvent]:
        logger.debug("Sending CalDAV REPORT to %s", url)
        report_headers = {
            **headers,
            "Content-Type": "application/xml",
            "Depth": "1",
        }
        response = await self._send(
            client, "REPORT", url, headers=report_headers, content=build_report_body(start, end)
        )

        if not response.is_success:
            logger.error(
                "CalDAV error: HTTP %d from %s: %s",
                response.status_code,
                url,
                response.text[:MAX_LOGGED_BODY_CHARS],
            )
            return []

        events: list[CalendarEvent] = []
        for blob in extract_calendar_data(response.text):
            events.extend(self.parser.parse(blob))

        if self.filter_report_window:
            events = filter_day_window(events, start, end)

        logger.debug("CalDAV REPORT on %s yielded %d events", url, len(events))
        return events

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TransportError as e:
            raise CalendarSourceUnreachableError(f"{method} {url}: {e}") from e


def filter_day_window(
    events: list[CalendarEvent],
    start: datetime.datetime,
    end: datetime.datetime,
) -> list[CalendarEvent]:
    """Keep events whose start falls in ``[start, end)``; undated events are dropped."""
    return [event for event in events if event.date_from is not None and start <= event.date_from < end]

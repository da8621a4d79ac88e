"""Google Calendar API client for inspection calendar events."""
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup

from importer.models import CalendarEvent

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """Client for the Google Calendar v3 REST API."""

    BASE_URL = "https://www.googleapis.com/calendar/v3"
    MAX_RETRIES = 3
    BASE_DELAY = 1  # seconds
    PAGE_SIZE = 250

    def __init__(self, access_token: str, timeout: int = 30):
        """
        Initialize the calendar client.

        Args:
            access_token: OAuth bearer token with calendar read scope
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {access_token}',
            'Accept': 'application/json'
        })

    def list_calendars(self) -> List[Dict[str, Any]]:
        """
        List the calendars visible to the token.

        Returns:
            Calendar list entries as returned by the API
        """
        calendars = []
        params: Dict[str, Any] = {}

        while True:
            data = self._get(f"{self.BASE_URL}/users/me/calendarList", params)
            calendars.extend(data.get('items', []))
            page_token = data.get('nextPageToken')
            if not page_token:
                break
            params = {'pageToken': page_token}

        logger.info(f"Found {len(calendars)} calendars")
        return calendars

    def find_calendar_by_name(self, name: str) -> Optional[str]:
        """
        Find a calendar id by its display name (case-insensitive).

        Args:
            name: Calendar summary to look for

        Returns:
            Calendar id, or None if no calendar has that name
        """
        wanted = name.strip().lower()
        for calendar in self.list_calendars():
            if (calendar.get('summary') or '').strip().lower() == wanted:
                return calendar.get('id')

        logger.warning(f"Calendar '{name}' not found")
        return None

    def fetch_events(self, calendar_id: str, days_ahead: int = 30) -> List[CalendarEvent]:
        """
        Fetch upcoming events from a calendar.

        Args:
            calendar_id: Google calendar id
            days_ahead: Number of days to fetch events for (default: 30)

        Returns:
            List of CalendarEvent objects, cancelled events excluded
        """
        logger.info(f"Fetching events for {days_ahead} days ahead from {calendar_id}")

        start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=days_ahead + 1)

        base_params = {
            'timeMin': start.isoformat(),
            'timeMax': end.isoformat(),
            'singleEvents': 'true',
            'orderBy': 'startTime',
            'maxResults': self.PAGE_SIZE
        }
        url = f"{self.BASE_URL}/calendars/{quote(calendar_id, safe='')}/events"

        events = []
        params = dict(base_params)
        while True:
            data = self._get(url, params)
            for item in data.get('items', []):
                event = self._parse_event(item)
                if event:
                    events.append(event)

            page_token = data.get('nextPageToken')
            if not page_token:
                break
            params = dict(base_params, pageToken=page_token)

        logger.info(f"Successfully fetched {len(events)} events")
        return events

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        GET a JSON document with retry logic.

        Raises:
            requests.RequestException: If all retry attempts fail, or at once
                for a 4xx response other than 429
        """
        for attempt in range(self.MAX_RETRIES):
            try:
                logger.debug(f"GET {url} (attempt {attempt + 1}/{self.MAX_RETRIES})")
                response = self.session.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except requests.RequestException as e:
                if self._is_client_error(e):
                    logger.error(f"Request rejected, not retrying: {e}")
                    raise
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} retry attempts failed. Last error: {e}"
                    )
                    raise

    @staticmethod
    def _is_client_error(error: requests.RequestException) -> bool:
        """4xx responses other than 429 will not succeed on retry."""
        response = getattr(error, 'response', None)
        if response is None:
            return False
        return 400 <= response.status_code < 500 and response.status_code != 429

    def _parse_event(self, item: Dict[str, Any]) -> Optional[CalendarEvent]:
        """
        Convert an API event resource to a CalendarEvent.

        Returns:
            CalendarEvent, or None for cancelled or id-less events
        """
        if item.get('status') == 'cancelled' or not item.get('id'):
            return None

        event = CalendarEvent.from_dict(item)
        if event.description:
            event.description = self._html_to_text(event.description)
        return event

    @staticmethod
    def _html_to_text(description: str) -> str:
        """Event descriptions edited in the web UI are HTML fragments."""
        soup = BeautifulSoup(description, 'html.parser')
        for br in soup.find_all('br'):
            br.replace_with('\n')
        return soup.get_text().strip()

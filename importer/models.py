"""Data models for calendar import."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class EventTime:
    """Start or end of a calendar event, timed or whole-day."""
    date_time: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'EventTime':
        data = data or {}
        return cls(date_time=data.get('dateTime'), date=data.get('date'))

    def to_dict(self) -> Dict[str, str]:
        result = {}
        if self.date_time:
            result['dateTime'] = self.date_time
        if self.date:
            result['date'] = self.date
        return result

    @property
    def is_all_day(self) -> bool:
        return not self.date_time and bool(self.date)

    def to_datetime(self) -> Optional[datetime]:
        """
        Convert to a timezone-aware datetime.

        Whole-day dates become UTC midnight. Returns None when neither
        field is set.
        """
        if self.date_time:
            value = self.date_time.strip()
            if value.endswith('Z'):
                value = value[:-1] + '+00:00'
            parsed = datetime.fromisoformat(value)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        if self.date:
            parsed = datetime.strptime(self.date.strip(), '%Y-%m-%d')
            return parsed.replace(tzinfo=timezone.utc)
        return None


@dataclass
class CalendarEvent:
    """Event as received from the calendar provider."""
    id: str
    summary: str
    start: EventTime
    end: Optional[EventTime] = None
    description: Optional[str] = None
    location: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CalendarEvent':
        """Build an event from the Google Calendar API JSON shape."""
        end = data.get('end')
        return cls(
            id=data.get('id') or '',
            summary=data.get('summary') or '',
            start=EventTime.from_dict(data.get('start')),
            end=EventTime.from_dict(end) if end else None,
            description=data.get('description') or None,
            location=data.get('location') or None
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'id': self.id,
            'summary': self.summary,
            'start': self.start.to_dict()
        }
        if self.end:
            result['end'] = self.end.to_dict()
        if self.description:
            result['description'] = self.description
        if self.location:
            result['location'] = self.location
        return result


@dataclass
class BuilderAbbreviation:
    """Short code used on calendar titles to name a builder."""
    id: str
    builder_id: str
    abbreviation: str
    is_primary: bool = False


@dataclass
class BuilderMatch:
    """Outcome of matching a title token against builder abbreviations."""
    builder_id: Optional[str]
    quality: str  # exact | fuzzy | none
    abbreviation: Optional[str] = None


@dataclass
class ParsedEvent:
    """Signals recovered from one event title."""
    builder_token: Optional[str]
    inspection_type_token: Optional[str]
    remainder: str
    builder_id: Optional[str] = None
    builder_match: str = 'none'
    matched_abbreviation: Optional[str] = None
    inspection_type: Optional[str] = None
    confidence: int = 0

    def to_metadata(self) -> Dict[str, Any]:
        """Serialized form embedded on review-queue rows."""
        return {
            'confidence': self.confidence,
            'builderId': self.builder_id,
            'inspectionType': self.inspection_type,
            'builderToken': self.builder_token,
            'matchedAbbreviation': self.matched_abbreviation,
            'builderMatch': self.builder_match
        }


@dataclass
class Job:
    """Inspection job created from a calendar event."""
    id: str
    google_event_id: str
    name: str
    builder_id: str
    inspection_type: str
    address: str
    scheduled_date: str
    created_by: str
    notes: str
    created_at: str
    status: str = 'scheduled'
    contractor: str = 'TBD'


@dataclass
class UnmatchedCalendarEvent:
    """Review-queue row for an event that needs a human decision."""
    id: str
    calendar_id: str
    google_event_id: str
    title: str
    location: Optional[str]
    description: Optional[str]
    start_time: str
    end_time: Optional[str]
    confidence_score: int
    status: str
    raw_event_json: Dict[str, Any]
    created_at: str


@dataclass
class CalendarImportLog:
    """Audit row written once per import batch."""
    id: str
    calendar_id: str
    import_timestamp: str
    events_processed: int
    jobs_created: int
    events_queued: int
    errors: Optional[List[str]] = None


@dataclass
class ImportResult:
    """Aggregate result of one import batch."""
    jobs_created: int = 0
    events_queued: int = 0
    events_processed: int = 0
    errors: List[str] = field(default_factory=list)
    import_log_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'jobsCreated': self.jobs_created,
            'eventsQueued': self.events_queued,
            'eventsProcessed': self.events_processed,
            'errors': list(self.errors),
            'importLogId': self.import_log_id
        }

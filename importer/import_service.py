"""Calendar import policy engine: turns calendar events into jobs and review rows."""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Union

from importer.classifier import EventClassifier
from importer.confidence import (
    DEFAULT_TIERS,
    DEFAULT_WEIGHTS,
    TIER_HIGH,
    TIER_LOW,
    TIER_MEDIUM,
    ConfidenceTiers,
    ConfidenceWeights,
)
from importer.models import (
    CalendarEvent,
    CalendarImportLog,
    ImportResult,
    Job,
    ParsedEvent,
    UnmatchedCalendarEvent,
)
from storage.dynamodb_manager import DuplicateJobError, DuplicateQueueEntryError

logger = logging.getLogger(__name__)


STATUS_PENDING = 'pending'
STATUS_FLAGGED = 'flagged'
STATUS_APPROVED = 'approved'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CalendarImportService:
    """
    Imports one batch of calendar events for a calendar.

    Events are handled one at a time in input order. Per event:

    - blank title: skipped, only counted as processed
    - a job already exists for the event id: no-op
    - confidence >= 80: create a job; a 'pending' row from an earlier run
      becomes 'approved'
    - 60 <= confidence < 80: create a job and a 'flagged' review row, or
      flag the 'pending' row of an earlier run
    - confidence < 60: create a 'pending' review row only

    One CalendarImportLog row is written after every batch.
    """

    def __init__(
        self,
        storage,
        weights: ConfidenceWeights = DEFAULT_WEIGHTS,
        tiers: ConfidenceTiers = DEFAULT_TIERS
    ):
        """
        Initialize the import service.

        Args:
            storage: Storage collaborator (DynamoDBManager or compatible)
            weights: Confidence points per classification signal
            tiers: Confidence tier thresholds
        """
        self.storage = storage
        self.weights = weights
        self.tiers = tiers

    def process_events(
        self,
        events: Iterable[Union[CalendarEvent, dict]],
        calendar_id: str,
        user_id: str
    ) -> ImportResult:
        """
        Process a batch of calendar events.

        Args:
            events: Ordered calendar events, as CalendarEvent objects or
                Google Calendar API dicts
            calendar_id: Calendar the events were read from
            user_id: User stamped as creator of any job produced

        Returns:
            ImportResult with aggregate counts, errors and import log id

        Raises:
            ValueError: If calendar_id or user_id is missing, or events is
                not a list of calendar events
        """
        batch = self._validate_batch(events, calendar_id, user_id)
        result = ImportResult(events_processed=len(batch))

        logger.info(f"Processing {len(batch)} events from calendar {calendar_id}")

        # Abbreviations are read fresh per batch, never cached between runs
        classifier = EventClassifier(
            self.storage.get_builder_abbreviations(),
            weights=self.weights
        )

        for event in batch:
            try:
                self._process_single_event(
                    event, classifier, calendar_id, user_id, result
                )
            except Exception as e:
                logger.error(
                    f"Error processing event {event.id}: {e}",
                    exc_info=True
                )
                result.errors.append(f"Event {event.id}: {e}")

        self._write_import_log(calendar_id, result)

        logger.info(
            f"Import complete for calendar {calendar_id}: "
            f"{result.events_processed} processed, {result.jobs_created} jobs created, "
            f"{result.events_queued} queued, {len(result.errors)} errors"
        )
        return result

    def _validate_batch(
        self,
        events: Any,
        calendar_id: str,
        user_id: str
    ) -> List[CalendarEvent]:
        if not calendar_id or not str(calendar_id).strip():
            raise ValueError("calendar_id is required")
        if not user_id or not str(user_id).strip():
            raise ValueError("user_id is required")
        if events is None or isinstance(events, (str, bytes, dict)):
            raise ValueError("events must be a list of calendar events")

        batch = []
        for index, event in enumerate(events):
            if isinstance(event, dict):
                event = CalendarEvent.from_dict(event)
            if not isinstance(event, CalendarEvent):
                raise ValueError(
                    f"Event at position {index} is not a calendar event: "
                    f"{type(event).__name__}"
                )
            if not event.id:
                raise ValueError(f"Event at position {index} has no id")
            batch.append(event)

        return batch

    def _process_single_event(
        self,
        event: CalendarEvent,
        classifier: EventClassifier,
        calendar_id: str,
        user_id: str,
        result: ImportResult
    ) -> None:
        parsed = classifier.classify(event.summary)
        if parsed is None:
            logger.warning(f"Skipping event {event.id} without title")
            return

        if self.storage.get_job_by_event_id(event.id):
            logger.info(f"Job already exists for event {event.id}, skipping")
            return

        tier = self.tiers.tier_for(parsed.confidence)
        if not parsed.builder_id or not parsed.inspection_type:
            # Custom weights can reach a job tier on one signal; a job needs both
            tier = TIER_LOW

        if tier == TIER_HIGH:
            if self._create_job(event, parsed, user_id):
                result.jobs_created += 1
                self._approve_pending_review(event, parsed, calendar_id)
            return

        if tier == TIER_MEDIUM:
            try:
                created = self._create_job(event, parsed, user_id)
            except Exception as e:
                # The reviewer still needs to see the event
                logger.error(
                    f"Failed to create job for event {event.id}, "
                    f"queueing for review instead: {e}",
                    exc_info=True
                )
                result.errors.append(f"Event {event.id}: {e}")
                if self._queue_for_review(event, parsed, calendar_id, STATUS_PENDING):
                    result.events_queued += 1
                return

            if not created:
                return
            result.jobs_created += 1
            if self._queue_for_review(event, parsed, calendar_id, STATUS_FLAGGED):
                result.events_queued += 1
            return

        if self.storage.get_unmatched_event(event.id):
            logger.info(f"Event {event.id} is already in the review queue, skipping")
            return
        if self._queue_for_review(event, parsed, calendar_id, STATUS_PENDING):
            result.events_queued += 1

    def _create_job(
        self,
        event: CalendarEvent,
        parsed: ParsedEvent,
        user_id: str
    ) -> bool:
        """
        Create the job for an event.

        Returns:
            True if a job was created, False if another import created one
            first
        """
        scheduled = event.start.to_datetime() or datetime.now(timezone.utc)

        if event.location:
            name = f"{parsed.inspection_type} - {event.location}"
        else:
            name = event.summary

        notes = f"Auto-created from calendar event: {event.summary}"
        if parsed.remainder:
            notes += f"\n{parsed.remainder}"

        job = Job(
            id=str(uuid.uuid4()),
            google_event_id=event.id,
            name=name,
            builder_id=parsed.builder_id,
            inspection_type=parsed.inspection_type,
            address=event.location or parsed.remainder or event.summary or 'TBD',
            scheduled_date=scheduled.isoformat(),
            created_by=user_id,
            notes=notes,
            created_at=_now()
        )

        try:
            self.storage.create_job(job)
        except DuplicateJobError:
            logger.info(f"Job for event {event.id} was created concurrently, skipping")
            return False

        logger.info(
            f"Created job {job.id} from event {event.id}: "
            f"type={parsed.inspection_type} confidence={parsed.confidence}"
        )
        return True

    def _build_unmatched(
        self,
        event: CalendarEvent,
        parsed: ParsedEvent,
        calendar_id: str,
        status: str
    ) -> UnmatchedCalendarEvent:
        start = event.start.to_datetime() or datetime.now(timezone.utc)
        end = event.end.to_datetime() if event.end else None

        raw_event = event.to_dict()
        raw_event['parsed'] = parsed.to_metadata()

        return UnmatchedCalendarEvent(
            id=str(uuid.uuid4()),
            calendar_id=calendar_id,
            google_event_id=event.id,
            title=event.summary,
            location=event.location,
            description=event.description,
            start_time=start.isoformat(),
            end_time=end.isoformat() if end else None,
            confidence_score=parsed.confidence,
            status=status,
            raw_event_json=raw_event,
            created_at=_now()
        )

    def _queue_for_review(
        self,
        event: CalendarEvent,
        parsed: ParsedEvent,
        calendar_id: str,
        status: str
    ) -> bool:
        """
        Add an event to the review queue.

        A 'flagged' row replaces a 'pending' row left by an earlier run in
        which the event scored lower.

        Returns:
            True if a row was created or upgraded, False if the event was
            already queued
        """
        unmatched = self._build_unmatched(event, parsed, calendar_id, status)

        try:
            self.storage.create_unmatched_event(unmatched)
        except DuplicateQueueEntryError:
            if status == STATUS_FLAGGED and self.storage.update_unmatched_event(
                unmatched, expected_status=STATUS_PENDING
            ):
                logger.info(
                    f"Flagged previously pending event {event.id}: "
                    f"confidence={parsed.confidence}"
                )
                return True
            logger.info(f"Event {event.id} is already in the review queue, skipping")
            return False

        logger.info(
            f"Queued event {event.id} for review: "
            f"status={status} confidence={parsed.confidence}"
        )
        return True

    def _approve_pending_review(
        self,
        event: CalendarEvent,
        parsed: ParsedEvent,
        calendar_id: str
    ) -> None:
        """Close a 'pending' row from an earlier run once a job exists."""
        unmatched = self._build_unmatched(event, parsed, calendar_id, STATUS_APPROVED)
        if self.storage.update_unmatched_event(unmatched, expected_status=STATUS_PENDING):
            logger.info(f"Approved pending review entry for event {event.id}")

    def _write_import_log(self, calendar_id: str, result: ImportResult) -> Optional[str]:
        import_log = CalendarImportLog(
            id=str(uuid.uuid4()),
            calendar_id=calendar_id,
            import_timestamp=_now(),
            events_processed=result.events_processed,
            jobs_created=result.jobs_created,
            events_queued=result.events_queued,
            errors=list(result.errors) or None
        )

        try:
            self.storage.create_import_log(import_log)
        except Exception as e:
            logger.error(f"Failed to create import log: {e}", exc_info=True)
            result.errors.append(f"Import log: {e}")
            return None

        result.import_log_id = import_log.id
        return import_log.id

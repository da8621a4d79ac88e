"""DynamoDB manager for calendar import storage operations."""
import logging
from dataclasses import asdict
from decimal import Decimal
from typing import Any, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from importer.models import (
    BuilderAbbreviation,
    CalendarImportLog,
    Job,
    UnmatchedCalendarEvent,
)

logger = logging.getLogger(__name__)


class DuplicateJobError(Exception):
    """A job already exists for the calendar event."""

    def __init__(self, google_event_id: str):
        super().__init__(f"Job already exists for calendar event {google_event_id}")
        self.google_event_id = google_event_id


class DuplicateQueueEntryError(Exception):
    """A review-queue row already exists for the calendar event."""

    def __init__(self, google_event_id: str):
        super().__init__(
            f"Review queue entry already exists for calendar event {google_event_id}"
        )
        self.google_event_id = google_event_id


def _plain(value: Any) -> Any:
    """Convert DynamoDB Decimals back to ints/floats, recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


class DynamoDBManager:
    """
    Manager for DynamoDB operations.

    Jobs and review-queue rows are keyed by google_event_id and written
    with a conditional put, so the table itself rejects a second row for
    the same calendar event even when two imports race.
    """

    def __init__(
        self,
        jobs_table: str,
        unmatched_events_table: str,
        import_logs_table: str,
        abbreviations_table: str,
        region_name: Optional[str] = None
    ):
        """
        Initialize DynamoDB resource and table references.

        Args:
            jobs_table: Name of the jobs table (hash key google_event_id)
            unmatched_events_table: Name of the review-queue table
                (hash key google_event_id)
            import_logs_table: Name of the import log table (hash key id)
            abbreviations_table: Name of the builder abbreviation table
                (hash key id)
            region_name: AWS region, defaults to the environment's region
        """
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.jobs = self.dynamodb.Table(jobs_table)
        self.unmatched_events = self.dynamodb.Table(unmatched_events_table)
        self.import_logs = self.dynamodb.Table(import_logs_table)
        self.abbreviations = self.dynamodb.Table(abbreviations_table)
        logger.info(
            f"Initialized DynamoDBManager for tables: {jobs_table}, "
            f"{unmatched_events_table}, {import_logs_table}, {abbreviations_table}"
        )

    def _scan_all(self, table, **kwargs) -> List[dict]:
        """Scan a table, following LastEvaluatedKey pagination."""
        response = table.scan(**kwargs)
        items = response.get('Items', [])

        while 'LastEvaluatedKey' in response:
            response = table.scan(
                ExclusiveStartKey=response['LastEvaluatedKey'],
                **kwargs
            )
            items.extend(response.get('Items', []))

        return items

    def get_builder_abbreviations(self) -> List[BuilderAbbreviation]:
        """
        Retrieve all builder abbreviations.

        Returns:
            List of BuilderAbbreviation objects
        """
        try:
            items = self._scan_all(self.abbreviations)
        except ClientError as e:
            logger.error(f"Error scanning builder abbreviations: {e}")
            raise

        abbreviations = []
        for item in items:
            try:
                abbreviations.append(BuilderAbbreviation(
                    id=item['id'],
                    builder_id=item['builder_id'],
                    abbreviation=item['abbreviation'],
                    is_primary=bool(item.get('is_primary', False))
                ))
            except KeyError as e:
                logger.warning(f"Skipping malformed abbreviation item: missing {e}")

        logger.info(f"Retrieved {len(abbreviations)} builder abbreviations")
        return abbreviations

    def put_builder_abbreviation(self, abbreviation: BuilderAbbreviation) -> None:
        """Store a builder abbreviation, replacing any row with the same id."""
        try:
            self.abbreviations.put_item(Item=asdict(abbreviation))
        except ClientError as e:
            logger.error(f"Error writing abbreviation {abbreviation.id}: {e}")
            raise

    def get_job_by_event_id(self, google_event_id: str) -> Optional[Job]:
        """
        Look up the job created from a calendar event.

        Args:
            google_event_id: External calendar event id

        Returns:
            Job or None if no job exists for the event
        """
        try:
            response = self.jobs.get_item(Key={'google_event_id': google_event_id})
        except ClientError as e:
            logger.error(f"Error reading job for event {google_event_id}: {e}")
            raise

        item = response.get('Item')
        if not item:
            return None
        return Job(**_plain(item))

    def create_job(self, job: Job) -> Job:
        """
        Insert a job unless one already exists for its calendar event.

        Args:
            job: Job to insert

        Returns:
            The inserted job

        Raises:
            DuplicateJobError: If a job for job.google_event_id exists
        """
        try:
            self.jobs.put_item(
                Item=asdict(job),
                ConditionExpression=Attr('google_event_id').not_exists()
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise DuplicateJobError(job.google_event_id) from e
            logger.error(f"Error writing job for event {job.google_event_id}: {e}")
            raise

        logger.info(f"Created job {job.id} for event {job.google_event_id}")
        return job

    def get_unmatched_event(self, google_event_id: str) -> Optional[UnmatchedCalendarEvent]:
        """Look up the review-queue row for a calendar event."""
        try:
            response = self.unmatched_events.get_item(
                Key={'google_event_id': google_event_id}
            )
        except ClientError as e:
            logger.error(
                f"Error reading review queue entry for event {google_event_id}: {e}"
            )
            raise

        item = response.get('Item')
        if not item:
            return None
        return UnmatchedCalendarEvent(**_plain(item))

    def create_unmatched_event(
        self,
        unmatched: UnmatchedCalendarEvent
    ) -> UnmatchedCalendarEvent:
        """
        Insert a review-queue row unless one exists for the calendar event.

        Raises:
            DuplicateQueueEntryError: If the event is already queued
        """
        try:
            self.unmatched_events.put_item(
                Item=asdict(unmatched),
                ConditionExpression=Attr('google_event_id').not_exists()
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise DuplicateQueueEntryError(unmatched.google_event_id) from e
            logger.error(
                f"Error writing review queue entry for event "
                f"{unmatched.google_event_id}: {e}"
            )
            raise

        logger.info(
            f"Queued event {unmatched.google_event_id} for review "
            f"with status {unmatched.status}"
        )
        return unmatched

    def update_unmatched_event(
        self,
        unmatched: UnmatchedCalendarEvent,
        expected_status: str = 'pending'
    ) -> Optional[UnmatchedCalendarEvent]:
        """
        Overwrite the review snapshot of an event still in expected_status.

        The row keeps its id and created_at; status, confidence, event
        fields and raw_event_json are replaced.

        Args:
            unmatched: New row contents
            expected_status: Status the stored row must have

        Returns:
            The updated row, or None if no row is in expected_status
        """
        fields = (
            'status', 'confidence_score', 'title', 'location', 'description',
            'start_time', 'end_time', 'raw_event_json'
        )
        values = asdict(unmatched)

        try:
            response = self.unmatched_events.update_item(
                Key={'google_event_id': unmatched.google_event_id},
                UpdateExpression='SET ' + ', '.join(f'#{name} = :{name}' for name in fields),
                ExpressionAttributeNames={f'#{name}': name for name in fields},
                ExpressionAttributeValues={f':{name}': values[name] for name in fields},
                ConditionExpression=Attr('status').eq(expected_status),
                ReturnValues='ALL_NEW'
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.info(
                    f"No {expected_status} review queue entry for event "
                    f"{unmatched.google_event_id}"
                )
                return None
            logger.error(
                f"Error updating review queue entry for event "
                f"{unmatched.google_event_id}: {e}"
            )
            raise

        logger.info(
            f"Moved review queue entry for event {unmatched.google_event_id} "
            f"from {expected_status} to {unmatched.status}"
        )
        return UnmatchedCalendarEvent(**_plain(response['Attributes']))

    def create_import_log(self, import_log: CalendarImportLog) -> CalendarImportLog:
        """Insert the audit row for one import batch."""
        try:
            self.import_logs.put_item(Item=asdict(import_log))
        except ClientError as e:
            logger.error(f"Error writing import log {import_log.id}: {e}")
            raise

        logger.info(f"Created import log {import_log.id}")
        return import_log

    def get_import_logs(self, calendar_id: str) -> List[CalendarImportLog]:
        """
        Retrieve the import logs of one calendar, oldest first.

        Args:
            calendar_id: Calendar whose runs to list

        Returns:
            List of CalendarImportLog objects ordered by import_timestamp
        """
        try:
            items = self._scan_all(
                self.import_logs,
                FilterExpression=Attr('calendar_id').eq(calendar_id)
            )
        except ClientError as e:
            logger.error(f"Error scanning import logs for {calendar_id}: {e}")
            raise

        logs = [CalendarImportLog(**_plain(item)) for item in items]
        return sorted(logs, key=lambda log: log.import_timestamp)

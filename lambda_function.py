"""AWS Lambda handler for the scheduled inspection calendar import."""
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, Any, Optional

from fetcher.google_calendar import GoogleCalendarClient
from importer.import_service import CalendarImportService
from storage.dynamodb_manager import DynamoDBManager


# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_LOG_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {
    'message', 'asctime'
}


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including fields passed via extra."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_LOG_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass
class ImportConfig:
    """Runtime configuration read from environment variables."""
    enabled: bool
    calendar_id: Optional[str]
    calendar_name: str
    lookahead_days: int
    user_id: str
    google_token: str
    jobs_table: str
    unmatched_events_table: str
    import_logs_table: str
    abbreviations_table: str
    log_level: str
    timeout_seconds: int


def load_config(environ: Optional[Dict[str, str]] = None) -> ImportConfig:
    """
    Read and validate configuration.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        ImportConfig

    Raises:
        ValueError: If a value is missing or invalid
    """
    env = os.environ if environ is None else environ

    enabled = env.get('CALENDAR_IMPORT_ENABLED', 'true').strip().lower() != 'false'

    try:
        lookahead_days = int(env.get('CALENDAR_IMPORT_LOOKAHEAD_DAYS', '30'))
        timeout_seconds = int(env.get('TIMEOUT_SECONDS', '30'))
    except ValueError as e:
        raise ValueError(f"Invalid numeric configuration value: {e}") from e

    if not 1 <= lookahead_days <= 365:
        raise ValueError(
            f"CALENDAR_IMPORT_LOOKAHEAD_DAYS must be between 1 and 365, got {lookahead_days}"
        )

    config = ImportConfig(
        enabled=enabled,
        calendar_id=env.get('CALENDAR_ID') or None,
        calendar_name=env.get('CALENDAR_NAME', 'Building Knowledge'),
        lookahead_days=lookahead_days,
        user_id=env.get('CALENDAR_IMPORT_USER_ID', ''),
        google_token=env.get('GOOGLE_CALENDAR_TOKEN', ''),
        jobs_table=env.get('JOBS_TABLE', 'inspection-jobs'),
        unmatched_events_table=env.get('UNMATCHED_EVENTS_TABLE', 'unmatched-calendar-events'),
        import_logs_table=env.get('IMPORT_LOGS_TABLE', 'calendar-import-logs'),
        abbreviations_table=env.get('BUILDER_ABBREVIATIONS_TABLE', 'builder-abbreviations'),
        log_level=env.get('LOG_LEVEL', 'INFO'),
        timeout_seconds=timeout_seconds
    )

    if config.enabled:
        if not config.user_id:
            raise ValueError("CALENDAR_IMPORT_USER_ID must be set")
        if not config.google_token:
            raise ValueError("GOOGLE_CALENDAR_TOKEN must be set")
        if not config.calendar_id and not config.calendar_name.strip():
            raise ValueError("Either CALENDAR_ID or CALENDAR_NAME must be set")

    return config


def _error_response(message: str, error: Exception, start_time: float) -> Dict[str, Any]:
    duration = time.time() - start_time
    return {
        'statusCode': 500,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'duration_seconds': round(duration, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for the calendar import.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and import statistics
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)
    start_time = time.time()

    try:
        config = load_config()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return _error_response('Invalid configuration', e, start_time)

    if not config.enabled:
        logger.info("Calendar import is disabled (CALENDAR_IMPORT_ENABLED=false)")
        return {
            'statusCode': 200,
            'body': json.dumps({'message': 'Calendar import disabled'})
        }

    logger.info(
        "Calendar import started",
        extra={
            'calendar_id': config.calendar_id,
            'calendar_name': config.calendar_name,
            'lookahead_days': config.lookahead_days
        }
    )

    try:
        client = GoogleCalendarClient(
            access_token=config.google_token,
            timeout=config.timeout_seconds
        )
        storage = DynamoDBManager(
            jobs_table=config.jobs_table,
            unmatched_events_table=config.unmatched_events_table,
            import_logs_table=config.import_logs_table,
            abbreviations_table=config.abbreviations_table
        )
        service = CalendarImportService(storage)

        try:
            calendar_id = config.calendar_id
            if not calendar_id:
                calendar_id = client.find_calendar_by_name(config.calendar_name)
                if not calendar_id:
                    raise LookupError(f"Calendar '{config.calendar_name}' not found")
            raw_events = client.fetch_events(calendar_id, days_ahead=config.lookahead_days)
            logger.info(f"Fetched {len(raw_events)} events from calendar {calendar_id}")
        except Exception as e:
            logger.error(
                f"Failed to fetch calendar events: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response('Failed to fetch calendar events', e, start_time)

        result = service.process_events(raw_events, calendar_id, config.user_id)
        duration = time.time() - start_time

        if result.errors:
            logger.warning(
                f"Import completed with {len(result.errors)} errors",
                extra={'errors': result.errors}
            )

        logger.info(
            "Calendar import completed",
            extra={
                'duration_seconds': round(duration, 2),
                'events_processed': result.events_processed,
                'jobs_created': result.jobs_created,
                'events_queued': result.events_queued,
                'import_log_id': result.import_log_id
            }
        )

        statistics = result.to_dict()
        statistics.pop('errors')
        statistics['raw_events_fetched'] = len(raw_events)
        statistics['duration_seconds'] = round(duration, 2)

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Import completed successfully',
                'statistics': statistics,
                'errors': result.errors
            })
        }

    except Exception as e:
        logger.error(
            f"Calendar import failed: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response('Import failed', e, start_time)

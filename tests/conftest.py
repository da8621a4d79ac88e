"""Shared fixtures for DynamoDB-backed tests."""
import boto3
import pytest
from moto import mock_aws

from importer.models import BuilderAbbreviation
from storage.dynamodb_manager import DynamoDBManager


TABLES = {
    'test-jobs': 'google_event_id',
    'test-unmatched-events': 'google_event_id',
    'test-import-logs': 'id',
    'test-abbreviations': 'id',
}


@pytest.fixture
def aws_env(monkeypatch):
    """Fake credentials so boto3 never reaches a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb_tables(aws_env):
    """Create mock DynamoDB tables for jobs, review queue, logs and abbreviations."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        tables = {}
        for name, hash_key in TABLES.items():
            tables[name] = dynamodb.create_table(
                TableName=name,
                KeySchema=[{'AttributeName': hash_key, 'KeyType': 'HASH'}],
                AttributeDefinitions=[
                    {'AttributeName': hash_key, 'AttributeType': 'S'}
                ],
                BillingMode='PAY_PER_REQUEST'
            )

        yield tables


@pytest.fixture
def dynamodb_manager(dynamodb_tables):
    """Create DynamoDBManager instance with mock tables."""
    return DynamoDBManager(
        jobs_table='test-jobs',
        unmatched_events_table='test-unmatched-events',
        import_logs_table='test-import-logs',
        abbreviations_table='test-abbreviations'
    )


@pytest.fixture
def test_builder_id():
    return 'builder-inttest'


@pytest.fixture
def seeded_manager(dynamodb_manager, test_builder_id):
    """DynamoDBManager with the INTTEST abbreviation registered."""
    dynamodb_manager.put_builder_abbreviation(BuilderAbbreviation(
        id='abbr-inttest',
        builder_id=test_builder_id,
        abbreviation='INTTEST',
        is_primary=True
    ))
    return dynamodb_manager

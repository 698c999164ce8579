"""
DynamoDB connection handle shared by every repository.

All DynamoDB-specific plumbing lives here (boto3 resource setup, table
bootstrapping, pagination, error translation), keeping the repositories
small and the service layer storage-agnostic.

``DynamoDBStore`` is created once per process by the service container and
has an explicit lifecycle: ``initialize()`` builds the boto3 resource,
``shutdown()`` drops it together with the cached table handles.  Tables are
created automatically on first use when they do not already exist.  In
production, prefer managing the tables via CloudFormation / SAM / Terraform.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from taskboard.config import Settings
from taskboard.errors import StoreUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str, key: Optional[str] = None) -> Iterator[None]:
    """Translate botocore failures raised inside the block into StoreUnavailable."""
    try:
        yield
    except (ClientError, BotoCoreError) as exc:
        if key:
            logger.error("DynamoDB %s failed for '%s': %s", operation, key, exc)
        else:
            logger.error("DynamoDB %s failed: %s", operation, exc)
        raise StoreUnavailable() from exc


def error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def scan_all(table, **kwargs) -> list[dict]:
    """
    Scan *table* and return all matching items.

    Handles DynamoDB pagination transparently: multiple Scan calls are
    issued until ``LastEvaluatedKey`` is absent from the response.
    """
    response = table.scan(**kwargs)
    items: list[dict] = response.get("Items", [])
    while "LastEvaluatedKey" in response:
        response = table.scan(ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs)
        items.extend(response.get("Items", []))
    return items


class DynamoDBStore:
    """
    Owns the boto3 DynamoDB resource and the table handles.

    The resource is built in ``initialize()``; table handles are created
    lazily on first use so that starting the app does not immediately
    require live AWS credentials.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._resource = None
        self._tables: dict[str, object] = {}

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def initialize(self) -> None:
        if self._resource is None:
            self._resource = self._build_resource()
            logger.info("DynamoDB store initialised (region %s).", self._settings.aws_region)

    def shutdown(self) -> None:
        self._tables.clear()
        self._resource = None
        logger.info("DynamoDB store shut down.")

    @property
    def client(self):
        """Low-level client, used for transactional writes."""
        return self._require_resource().meta.client

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _build_resource(self):
        """Create a boto3 DynamoDB resource from application settings."""
        kwargs: dict = {"region_name": self._settings.aws_region}
        if self._settings.aws_access_key_id:
            kwargs["aws_access_key_id"] = self._settings.aws_access_key_id
            kwargs["aws_secret_access_key"] = self._settings.aws_secret_access_key
        if self._settings.dynamodb_endpoint_url:
            # Enables local DynamoDB (e.g. `dynamodb-local` container)
            kwargs["endpoint_url"] = self._settings.dynamodb_endpoint_url
        return boto3.resource("dynamodb", **kwargs)

    def _require_resource(self):
        if self._resource is None:
            raise StoreUnavailable("Document store is not initialised")
        return self._resource

    def table(self, table_name: str, key_name: str, ttl_attribute: Optional[str] = None):
        """
        Return the Table handle for *table_name*, creating the table (with a
        single string partition key *key_name*) if it does not yet exist.
        A newly created table gets TTL enabled on *ttl_attribute* when given.
        The handle is cached after the first successful call.
        """
        cached = self._tables.get(table_name)
        if cached is not None:
            return cached

        ddb = self._require_resource()
        with store_errors("CreateTable", table_name):
            try:
                table = ddb.create_table(
                    TableName=table_name,
                    KeySchema=[{"AttributeName": key_name, "KeyType": "HASH"}],
                    AttributeDefinitions=[
                        {"AttributeName": key_name, "AttributeType": "S"}
                    ],
                    BillingMode="PAY_PER_REQUEST",
                )
                table.wait_until_exists()
                logger.info("DynamoDB table '%s' created.", table_name)
                if ttl_attribute:
                    ddb.meta.client.update_time_to_live(
                        TableName=table_name,
                        TimeToLiveSpecification={"Enabled": True, "AttributeName": ttl_attribute},
                    )
                    logger.info("TTL enabled on '%s' (attribute '%s').", table_name, ttl_attribute)
            except ClientError as exc:
                if error_code(exc) == "ResourceInUseException":
                    # Table already exists; reuse it
                    table = ddb.Table(table_name)
                else:
                    raise

        self._tables[table_name] = table
        return table

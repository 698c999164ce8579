"""
DynamoDB implementation of UserRepository.

Table schema
────────────
  Table name    : taskboard_users  (configurable via DYNAMODB_USERS_TABLE)
  Partition key : pk  (String)

DynamoDB has no unique secondary indexes, so uniqueness of email and user
name is enforced with guard items written in the same transaction as the
user record:

  USER#<user_id>          the user record (including password_hash)
  EMAIL#<email>           {"user_id": ...}
  USERNAME#<user_name>    {"user_id": ...}   (lower-cased)

Every Put carries ``attribute_not_exists(pk)``, so of two concurrent
registrations with the same email exactly one transaction commits and the
other is cancelled and surfaces as ``ConflictError``.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from taskboard.dao.base import UserRepository
from taskboard.dao.dynamodb import DynamoDBStore, error_code, scan_all, store_errors
from taskboard.errors import ConflictError, StoreUnavailable
from taskboard.schemas.users import User, UserWithSecret

logger = logging.getLogger(__name__)

_serializer = TypeSerializer()

# Transaction item order in create(); cancellation reasons follow it.
_UNIQUE_FIELDS = (None, "email", "user_name")
_STORE_ONLY_KEYS = ("pk", "entity")


def _user_key(user_id: str) -> str:
    return f"USER#{user_id}"


def _email_key(email: str) -> str:
    return f"EMAIL#{email.strip().lower()}"


def _user_name_key(user_name: str) -> str:
    return f"USERNAME#{user_name.strip().lower()}"


def _marshal(item: dict) -> dict:
    return {k: _serializer.serialize(v) for k, v in item.items()}


def _to_user(item: dict) -> User:
    data = {k: v for k, v in item.items() if k not in _STORE_ONLY_KEYS + ("password_hash",)}
    return User(**data)


def _to_user_with_secret(item: dict) -> UserWithSecret:
    data = {k: v for k, v in item.items() if k not in _STORE_ONLY_KEYS}
    return UserWithSecret(**data)


class DynamoDBUserRepository(UserRepository):
    """UserRepository backed by a single DynamoDB table."""

    KEY = "pk"

    def __init__(self, store: DynamoDBStore, table_name: str) -> None:
        self._store = store
        self._table_name = table_name

    def _table(self):
        return self._store.table(self._table_name, self.KEY)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def _get_item(self, key: str) -> Optional[dict]:
        table = self._table()
        with store_errors("GetItem", key):
            response = table.get_item(Key={self.KEY: key})
        return response.get("Item")  # None if key not found

    def _resolve_guard(self, guard_key: str) -> Optional[dict]:
        guard = self._get_item(guard_key)
        if guard is None:
            return None
        return self._get_item(_user_key(guard["user_id"]))

    def find_by_id(self, user_id: str) -> Optional[User]:
        item = self._get_item(_user_key(user_id))
        return _to_user(item) if item else None

    def find_by_email(self, email: str) -> Optional[User]:
        item = self._resolve_guard(_email_key(email))
        return _to_user(item) if item else None

    def find_by_user_name(self, user_name: str) -> Optional[User]:
        item = self._resolve_guard(_user_name_key(user_name))
        return _to_user(item) if item else None

    def find_by_email_with_secret(self, email: str) -> Optional[UserWithSecret]:
        item = self._resolve_guard(_email_key(email))
        return _to_user_with_secret(item) if item else None

    def list_all(self) -> list[User]:
        table = self._table()
        with store_errors("Scan"):
            items = scan_all(table, FilterExpression=Attr("entity").eq("user"))
        logger.info("Listed %d user record(s) from DynamoDB.", len(items))
        return [_to_user(item) for item in items]

    # ── Writes ────────────────────────────────────────────────────────────────

    def create(self, user: UserWithSecret) -> User:
        table_name = self._table().name
        record = {self.KEY: _user_key(user.user_id), "entity": "user", **user.model_dump()}
        guards = [
            {self.KEY: _email_key(user.email), "entity": "email", "user_id": user.user_id},
            {self.KEY: _user_name_key(user.user_name), "entity": "user_name", "user_id": user.user_id},
        ]
        items = [
            {
                "Put": {
                    "TableName": table_name,
                    "Item": _marshal(item),
                    "ConditionExpression": "attribute_not_exists(pk)",
                }
            }
            for item in [record, *guards]
        ]
        try:
            self._store.client.transact_write_items(TransactItems=items)
        except ClientError as exc:
            if error_code(exc) == "TransactionCanceledException":
                raise self._conflict_from(exc) from exc
            logger.error("DynamoDB TransactWriteItems failed for user '%s': %s", user.user_id, exc)
            raise StoreUnavailable() from exc
        except BotoCoreError as exc:
            logger.error("DynamoDB TransactWriteItems failed for user '%s': %s", user.user_id, exc)
            raise StoreUnavailable() from exc

        logger.info("Saved user record for '%s'.", user.user_id)
        return user.public()

    @staticmethod
    def _conflict_from(exc: ClientError) -> ConflictError:
        reasons = exc.response.get("CancellationReasons", [])
        for field, reason in zip(_UNIQUE_FIELDS, reasons):
            if field and reason.get("Code") == "ConditionalCheckFailed":
                return ConflictError(f"{field} already exists", field=field)
        return ConflictError("User already exists")

    def _update_fields(self, user_id: str, changes: dict) -> Optional[dict]:
        changes = {**changes, "updated_at": datetime.now(timezone.utc).isoformat()}
        names = {f"#f{i}": name for i, name in enumerate(changes)}
        values = {f":v{i}": value for i, value in enumerate(changes.values())}
        expression = "SET " + ", ".join(f"#f{i} = :v{i}" for i in range(len(changes)))

        table = self._table()
        key = _user_key(user_id)
        with store_errors("UpdateItem", key):
            try:
                response = table.update_item(
                    Key={self.KEY: key},
                    UpdateExpression=expression,
                    ConditionExpression="attribute_exists(pk)",
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values,
                    ReturnValues="ALL_NEW",
                )
            except ClientError as exc:
                if error_code(exc) == "ConditionalCheckFailedException":
                    logger.warning("Update called for non-existent user '%s'.", user_id)
                    return None
                raise
        return response.get("Attributes")

    def update(self, user_id: str, changes: dict) -> Optional[User]:
        protected = {"user_id", "email", "user_name", "password_hash", "created_at"}
        changes = {k: v for k, v in changes.items() if k not in protected}
        item = self._update_fields(user_id, changes)
        return _to_user(item) if item else None

    def set_password_hash(self, user_id: str, password_hash: str) -> bool:
        return self._update_fields(user_id, {"password_hash": password_hash}) is not None

    def delete(self, user_id: str) -> Optional[User]:
        item = self._get_item(_user_key(user_id))
        if item is None:
            logger.warning("Delete called for non-existent user '%s'.", user_id)
            return None

        table_name = self._table().name
        keys = [_user_key(user_id), _email_key(item["email"]), _user_name_key(item["user_name"])]
        with store_errors("TransactWriteItems", user_id):
            self._store.client.transact_write_items(
                TransactItems=[
                    {"Delete": {"TableName": table_name, "Key": _marshal({self.KEY: key})}}
                    for key in keys
                ]
            )
        logger.info("Deleted DynamoDB record for user '%s'.", user_id)
        return _to_user(item)

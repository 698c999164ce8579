"""
DynamoDB implementation of NotificationRepository.

Table schema
────────────
  Table name    : taskboard_notifications
                  (configurable via DYNAMODB_NOTIFICATIONS_TABLE)
  Partition key : notification_id  (String)
  TTL attribute : expires_at  (Number, epoch seconds)

Every saved notification carries ``expires_at`` = ``created_at`` plus the
retention period (30 days by default).  DynamoDB's TTL sweeper removes
expired items on its own schedule, usually within a few days of expiry.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from taskboard.dao.base import NotificationRepository
from taskboard.dao.dynamodb import DynamoDBStore, error_code, scan_all, store_errors
from taskboard.schemas.notifications import Notification

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(days=30)


class DynamoDBNotificationRepository(NotificationRepository):
    KEY = "notification_id"
    TTL_ATTRIBUTE = "expires_at"

    def __init__(
        self,
        store: DynamoDBStore,
        table_name: str,
        retention: timedelta = DEFAULT_RETENTION,
    ) -> None:
        self._store = store
        self._table_name = table_name
        self._retention = retention

    def _table(self):
        return self._store.table(self._table_name, self.KEY, ttl_attribute=self.TTL_ATTRIBUTE)

    def _expires_at(self, notification: Notification) -> int:
        created = datetime.fromisoformat(notification.created_at)
        return int((created + self._retention).timestamp())

    def save(self, notification: Notification) -> None:
        table = self._table()
        item = {**notification.model_dump(), self.TTL_ATTRIBUTE: self._expires_at(notification)}
        with store_errors("PutItem", notification.notification_id):
            table.put_item(Item=item)

    def get(self, notification_id: str) -> Optional[Notification]:
        table = self._table()
        with store_errors("GetItem", notification_id):
            response = table.get_item(Key={self.KEY: notification_id})
        item = response.get("Item")
        return Notification(**item) if item else None

    def list_for_recipient(self, recipient: str) -> list[Notification]:
        table = self._table()
        with store_errors("Scan", recipient):
            items = scan_all(table, FilterExpression=Attr("recipient").eq(recipient))
        notifications = [Notification(**item) for item in items]
        notifications.sort(key=lambda n: n.created_at, reverse=True)
        return notifications

    def mark_read(self, recipient: str, notification_ids: list[str]) -> int:
        wanted = set(notification_ids)
        table = self._table()
        updated = 0
        for notification in self.list_for_recipient(recipient):
            if notification.is_read or (wanted and notification.notification_id not in wanted):
                continue
            with store_errors("UpdateItem", notification.notification_id):
                try:
                    table.update_item(
                        Key={self.KEY: notification.notification_id},
                        UpdateExpression="SET is_read = :read",
                        # UpdateItem upserts; never recreate a deleted notification
                        ConditionExpression="attribute_exists(notification_id) AND is_read = :unread",
                        ExpressionAttributeValues={":read": True, ":unread": False},
                    )
                except ClientError as exc:
                    if error_code(exc) == "ConditionalCheckFailedException":
                        logger.info(
                            "Notification '%s' was deleted or read concurrently; skipped.",
                            notification.notification_id,
                        )
                        continue
                    raise
            updated += 1
        logger.info("Marked %d notification(s) read for '%s'.", updated, recipient)
        return updated

    def delete(self, notification_id: str) -> bool:
        table = self._table()
        with store_errors("DeleteItem", notification_id):
            response = table.delete_item(Key={self.KEY: notification_id}, ReturnValues="ALL_OLD")
        return bool(response.get("Attributes"))

    def delete_for_user(self, user_id: str) -> int:
        table = self._table()
        with store_errors("Scan", user_id):
            items = scan_all(
                table,
                FilterExpression=Attr("recipient").eq(user_id) | Attr("sender").eq(user_id),
                ProjectionExpression=self.KEY,
            )
            with table.batch_writer() as batch:
                for item in items:
                    batch.delete_item(Key={self.KEY: item[self.KEY]})
        logger.info("Deleted %d notification(s) involving user '%s'.", len(items), user_id)
        return len(items)

"""
DynamoDB implementation of TaskRepository.

Table schema
────────────
  Table name    : taskboard_tasks  (configurable via DYNAMODB_TASKS_TABLE)
  Partition key : task_id  (String)
"""

import logging
from typing import Optional

from boto3.dynamodb.conditions import Attr

from taskboard.dao.base import TaskRepository
from taskboard.dao.dynamodb import DynamoDBStore, scan_all, store_errors
from taskboard.schemas.tasks import Task

logger = logging.getLogger(__name__)


class DynamoDBTaskRepository(TaskRepository):
    KEY = "task_id"

    def __init__(self, store: DynamoDBStore, table_name: str) -> None:
        self._store = store
        self._table_name = table_name

    def _table(self):
        return self._store.table(self._table_name, self.KEY)

    def save(self, task: Task) -> None:
        """
        Write *task* using a PutItem call.

        An existing item with the same ``task_id`` is completely replaced.
        """
        table = self._table()
        with store_errors("PutItem", task.task_id):
            table.put_item(Item=task.model_dump())
        logger.info("Saved task record '%s'.", task.task_id)

    def get(self, task_id: str) -> Optional[Task]:
        table = self._table()
        with store_errors("GetItem", task_id):
            response = table.get_item(Key={self.KEY: task_id})
        item = response.get("Item")
        return Task(**item) if item else None

    def list_by_owner(self, user_id: str) -> list[Task]:
        """
        Scan for the owner's tasks.

        Note: Scan reads every item in the table.  For large tables, add a
        GSI on ``user_id`` and switch to Query.
        """
        table = self._table()
        with store_errors("Scan", user_id):
            items = scan_all(table, FilterExpression=Attr("user_id").eq(user_id))
        logger.info("Listed %d task record(s) for user '%s'.", len(items), user_id)
        return [Task(**item) for item in items]

    def delete(self, task_id: str) -> bool:
        """
        ``ReturnValues="ALL_OLD"`` lets us detect whether the item actually
        existed before the delete, so we can return an accurate boolean.
        """
        table = self._table()
        with store_errors("DeleteItem", task_id):
            response = table.delete_item(Key={self.KEY: task_id}, ReturnValues="ALL_OLD")
        existed = bool(response.get("Attributes"))
        if existed:
            logger.info("Deleted DynamoDB record for task '%s'.", task_id)
        else:
            logger.warning("Delete called for non-existent task '%s'.", task_id)
        return existed

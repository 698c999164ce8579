"""
Service container: every long-lived collaborator, built once per process.

The FastAPI lifespan constructs a ``ServiceContainer``, calls
``initialize()`` on start-up and ``shutdown()`` on exit, and stores it on
``app.state.container``.  Dependencies in ``taskboard.dependencies`` read
from it, so tests can swap any piece with ``app.dependency_overrides``.
"""

import logging

from taskboard.config import Settings
from taskboard.dao.dynamodb import DynamoDBStore
from taskboard.dao.notifications import DynamoDBNotificationRepository
from taskboard.dao.tasks import DynamoDBTaskRepository
from taskboard.dao.users import DynamoDBUserRepository
from taskboard.services.email import EmailService
from taskboard.services.passwords import PasswordHasher
from taskboard.services.tokens import TokenCodec

logger = logging.getLogger(__name__)


class ServiceContainer:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.store = DynamoDBStore(settings)
        self.email = EmailService(settings)
        self.token_codec = TokenCodec.from_settings(settings)
        self.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

        self.users = DynamoDBUserRepository(self.store, settings.dynamodb_users_table)
        self.tasks = DynamoDBTaskRepository(self.store, settings.dynamodb_tasks_table)
        self.notifications = DynamoDBNotificationRepository(
            self.store, settings.dynamodb_notifications_table
        )

    def initialize(self) -> None:
        self.store.initialize()
        self.email.initialize()
        logger.info("Service container ready.")

    def shutdown(self) -> None:
        self.email.shutdown()
        self.store.shutdown()
        logger.info("Service container stopped.")

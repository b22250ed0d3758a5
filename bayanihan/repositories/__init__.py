"""
Repository layer - data access abstraction.

Repositories handle all database queries, keeping SQL/ORM logic
out of the service and route layers.
"""
from bayanihan.repositories.base import BaseRepository
from bayanihan.repositories.user_repository import UserRepository
from bayanihan.repositories.job_repository import JobRepository
from bayanihan.repositories.payment_repository import PaymentRepository
from bayanihan.repositories.goal_repository import GoalRepository
from bayanihan.repositories.notification_repository import NotificationRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "JobRepository",
    "PaymentRepository",
    "GoalRepository",
    "NotificationRepository",
]

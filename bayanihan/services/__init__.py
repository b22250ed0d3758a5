"""
Service layer - business logic and orchestration.

The lifecycle and matching modules are pure: they decide, the services
persist. Side effects run through the EffectDispatcher after commit.

RULE: Routes call services. Services call repositories. Never the reverse.
"""
from bayanihan.services.goal_service import GoalService, CreditOutcome
from bayanihan.services.notification_service import NotificationService
from bayanihan.services.effects import EffectDispatcher, DispatchReport
from bayanihan.services.job_service import JobService
from bayanihan.services.payment_service import PaymentService, calculate_fee_breakdown

__all__ = [
    "GoalService",
    "CreditOutcome",
    "NotificationService",
    "EffectDispatcher",
    "DispatchReport",
    "JobService",
    "PaymentService",
    "calculate_fee_breakdown",
]

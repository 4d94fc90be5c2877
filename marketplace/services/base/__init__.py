"""
Base services module.

Foundational service layer components:
- Base service class with shared error handling and logging
- Transaction management with post-commit effects
- Multi-channel notification dispatching
- Realtime push contract

ServiceFactory lives in marketplace.services.base.service_factory and is
imported from there, since it depends on every booking service.
"""

from marketplace.services.base.service_result import (
    ServiceResult,
    ServiceError,
    ErrorCode,
    ErrorSeverity,
)

from marketplace.services.base.base_service import BaseService

from marketplace.services.base.notification_dispatcher import (
    ChannelBackend,
    DeliveryResult,
    DispatchReport,
    NotificationChannel,
    NotificationDispatcher,
    NotificationTemplateRenderer,
    Recipient,
)

from marketplace.services.base.realtime_publisher import (
    NullRealtimePublisher,
    RealtimePublisher,
)

from marketplace.services.base.transaction_manager import (
    TransactionAborted,
    TransactionContext,
    TransactionManager,
)

__all__ = [
    "ServiceResult",
    "ServiceError",
    "ErrorCode",
    "ErrorSeverity",
    "BaseService",
    "ChannelBackend",
    "DeliveryResult",
    "DispatchReport",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationTemplateRenderer",
    "Recipient",
    "NullRealtimePublisher",
    "RealtimePublisher",
    "TransactionAborted",
    "TransactionContext",
    "TransactionManager",
]

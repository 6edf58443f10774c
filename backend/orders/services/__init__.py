"""
Orders services package - the order lifecycle engine.

- OrderTransitionService: Transition table and version-guarded writes
- OrderService: Finalize, verify/reject, status progression, queries, payment
- OrderItemService: Builds order lines from payloads
- DraftService: One CREATING draft per terminal session
- HoldService: Hold and resume
- CancellationService: Cancel with refund resolution
- ReturnService: Full and partial returns
- SplitService / MergeService: Structural operations
- OrderEventPublisher: Real-time fan-out of committed changes
"""

# Transition guard
from .transition_service import OrderTransitionService

# Notification operations
from .notification_service import OrderEvent, OrderEventKind, OrderEventPublisher

# Core order operations
from .item_service import OrderItemService
from .draft_service import DraftService
from .order_service import OrderService

# Lifecycle operations
from .hold_service import HoldService
from .cancellation_service import CancellationService
from .return_service import ReturnService

# Structural operations
from .split_service import SplitService
from .merge_service import MergeService

__all__ = [
    'OrderTransitionService',
    'OrderEvent',
    'OrderEventKind',
    'OrderEventPublisher',
    'OrderItemService',
    'DraftService',
    'OrderService',
    'HoldService',
    'CancellationService',
    'ReturnService',
    'SplitService',
    'MergeService',
]

"""
Typed per-status views of an order.

Storage keeps flat columns; ``Order.state`` projects them into one frozen
dataclass per status so callers only see the fields that status gives meaning
to. Use ``isinstance`` or ``match`` on the result.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union


@dataclass(frozen=True)
class Draft:
    session_key: Optional[str]


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class Confirmed:
    confirmed_by_id: Optional[str]
    confirmed_by_name: Optional[str]
    confirmed_at: Optional[datetime]


@dataclass(frozen=True)
class Preparing:
    pass


@dataclass(frozen=True)
class Ready:
    pass


@dataclass(frozen=True)
class Completed:
    paid_at: Optional[datetime]
    completed_at: Optional[datetime]


@dataclass(frozen=True)
class Held:
    hold_name: Optional[str]
    held_by_id: Optional[str]
    held_by_name: Optional[str]
    held_at: Optional[datetime]


@dataclass(frozen=True)
class Cancelled:
    reason: Optional[str]
    reason_type: Optional[str]
    refund_amount: Optional[Decimal]
    refund_method: Optional[str]
    cancelled_by_id: Optional[str]
    cancelled_at: Optional[datetime]


OrderState = Union[Draft, Pending, Confirmed, Preparing, Ready, Completed, Held, Cancelled]


def state_of(order) -> OrderState:
    status = order.status
    if status == "CREATING":
        return Draft(session_key=order.session_key)
    if status == "PENDING":
        return Pending()
    if status == "CONFIRMED":
        return Confirmed(
            confirmed_by_id=order.confirmed_by_id,
            confirmed_by_name=order.confirmed_by_name,
            confirmed_at=order.confirmed_at,
        )
    if status == "PREPARING":
        return Preparing()
    if status == "READY":
        return Ready()
    if status == "COMPLETED":
        return Completed(paid_at=order.paid_at, completed_at=order.completed_at)
    if status == "HOLD":
        return Held(
            hold_name=order.hold_name,
            held_by_id=order.held_by_id,
            held_by_name=order.held_by_name,
            held_at=order.held_at,
        )
    if status == "CANCELLED":
        return Cancelled(
            reason=order.cancel_reason,
            reason_type=order.cancel_reason_type,
            refund_amount=order.refund_amount,
            refund_method=order.refund_method,
            cancelled_by_id=order.cancelled_by_id,
            cancelled_at=order.cancelled_at,
        )
    raise ValueError(f"Unknown order status '{status}'")

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Custom signals that inventory bookkeeping (or any other app) can listen to.
# Every signal is sent with ``order=<Order>``; ``order_returned`` also carries
# ``order_return=<OrderReturn>``.
order_finalized = Signal()
order_completed = Signal()
order_cancelled = Signal()
order_returned = Signal()


def send_order_signal(signal, sender, **kwargs):
    """
    Send ``signal`` once the surrounding transaction commits.

    Receivers run through ``send_robust`` so a failing stock hook is logged
    and never undoes or blocks the committed order change.
    """

    def _send():
        responses = signal.send_robust(sender=sender, **kwargs)
        for receiver, response in responses:
            if isinstance(response, Exception):
                order = kwargs.get("order")
                logger.error(
                    f"Order signal receiver {getattr(receiver, '__qualname__', receiver)} failed "
                    f"for order {getattr(order, 'order_number', None)}: {response}",
                    exc_info=response,
                )

    transaction.on_commit(_send)

"""
Orders views package - modular view layer with mixins.
"""

from .order_viewset import OrderViewSet
from .draft_views import DraftOrderViewSet

__all__ = [
    'OrderViewSet',
    'DraftOrderViewSet',
]

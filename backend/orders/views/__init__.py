"""
Orders views package - viewset composed from action mixins.
"""

from .order_viewset import OrderViewSet

__all__ = [
    'OrderViewSet',
]

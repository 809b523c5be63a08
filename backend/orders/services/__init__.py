"""
Orders services package.

- OrderService: order intake and status updates
- OrderStateMachine: status transition rules
"""

from .order_service import OrderService
from .state_machine import OrderStateMachine

__all__ = [
    'OrderService',
    'OrderStateMachine',
]

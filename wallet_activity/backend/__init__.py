"""
Backend order feed: HTTP client for the application's order service and the
formatter that maps orders onto the Activity shape.
"""

from wallet_activity.backend.client import BackendOrderClient
from wallet_activity.backend.formatter import BackendOrder, order_to_activity, orders_to_activities

__all__ = ["BackendOrder", "BackendOrderClient", "order_to_activity", "orders_to_activities"]

"""
Structured logging for Wallet Activity.

JSON logs with timestamp, event_type and the wallet_id of the pass that
produced them. Use get_logger() in every module.
"""

from wallet_activity.activity_logging.logger import configure_logging, get_logger, pass_context

__all__ = ["configure_logging", "get_logger", "pass_context"]

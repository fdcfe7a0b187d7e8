"""
Custom exception classes for infrastructure side channels.
"""


class NotificationError(Exception):
    """Raised by a notification transport when a message could not be sent."""
    pass

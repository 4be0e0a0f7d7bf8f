"""
External service clients for the Hot Calls poller.
"""

from .datastore import DataStore
from .mailer import AlertSink, LogAlertSink, SmtpAlertSink

__all__ = [
    'AlertSink',
    'DataStore',
    'LogAlertSink',
    'SmtpAlertSink',
]

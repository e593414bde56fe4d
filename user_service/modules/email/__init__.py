"""
Email Module - Black Box Interface

Purpose: Deliver password reset links
Interface: send(address, reset_link)
Hidden: Provider API, message rendering

Replaceable with SMTP or any provider SDK implementing EmailSender.
"""

from .sender import HttpEmailSender, LoggingEmailSender

__all__ = ["HttpEmailSender", "LoggingEmailSender"]

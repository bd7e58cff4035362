"""Enums for the helpline API."""

from enum import Enum


class MessageStatus(str, Enum):
    """Lifecycle states for a recorded message."""
    PENDING = "pending"        # Created, audio not yet stored
    SENT = "sent"              # Audio uploaded
    PROCESSED = "processed"    # Transcribed and translated, awaiting an agent
    RESPONDED = "responded"    # At least one agent response exists
    ERROR = "error"            # Upload or speech pipeline failed


class UserRole(str, Enum):
    """Account role stored alongside the identity record."""
    USER = "user"      # Reporting party
    AGENT = "agent"    # Helpline operator

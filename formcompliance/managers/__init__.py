"""Managers for the form compliance engine (stateful, talk to the store)."""

from .base_manager import BaseManager
from .overdue_manager import OverdueManager
from .submission_manager import SubmissionManager

__all__ = ["BaseManager", "OverdueManager", "SubmissionManager"]

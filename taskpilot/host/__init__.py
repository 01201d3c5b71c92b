"""Host document collaborators."""

from taskpilot.host.base import HostActionError, HostSession

__all__ = ["HostActionError", "HostSession"]

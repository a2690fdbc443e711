"""Monitoring package for logging and invocation context."""

from wfp_action.monitoring.invocation_context import invocation_context

__all__ = [
    "invocation_context",
]

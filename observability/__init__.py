"""Observability utilities for the interview preparation services."""
from .logger import log_event, log_job, setup_logging

__all__ = ["log_event", "log_job", "setup_logging"]

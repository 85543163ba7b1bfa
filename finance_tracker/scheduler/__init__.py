"""Recurring transaction scheduling."""

from finance_tracker.scheduler.recurrence import RecurrenceScheduler, is_due, next_occurrence

__all__ = ["RecurrenceScheduler", "is_due", "next_occurrence"]

"""Recurring-trigger lifecycle, watchdog and the trigger runner loop."""

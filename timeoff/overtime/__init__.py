"""Overtime requests and vacation-day conversion."""

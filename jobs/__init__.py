"""Scheduled jobs built on the calculation engine."""

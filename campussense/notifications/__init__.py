"""Notification service: delivers alert events to subscribers."""

"""Retention infrastructure layer."""

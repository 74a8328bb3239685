"""Retention application layer: ports and use-case services."""

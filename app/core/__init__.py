"""
Core building blocks of the retention service: domain base classes,
interfaces, logging, dependency wiring and application lifecycle.
"""

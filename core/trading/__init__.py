"""
Shared trading core: interfaces, models, session state and display helpers.

This package hosts the service-agnostic types used by the session manager,
instrument resolver, order composer and position tracker.
"""

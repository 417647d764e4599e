"""
Scheduler package for release revision checks.

This package contains:
- Interval scheduler for revision checks
- Change detection against the stored version state
- Version state persistence
- Webhook alerting
"""

__version__ = "1.0.0"

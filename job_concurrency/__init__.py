"""
Job Concurrency Manager.

Runs external commands as prioritized jobs under a bounded concurrency limit,
with bounded retries and aggregate statistics.
"""

__version__ = "1.0.0"

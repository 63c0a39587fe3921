"""
Job Scheduler Test Suite.

- State transition tests (Job entity)
- Invariant tests (concurrency cap, dispatch order, idempotence)
- Retry tests
- Service operation tests
- Statistics tests
- Watchdog tests
- Launcher tests (real subprocesses)
- End-to-end scenarios
"""

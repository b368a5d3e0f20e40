"""
Integration tests.

These tests talk to a live Redis server and only run with USE_REAL_REDIS=1.
They call FLUSHALL: point them at a disposable Redis instance.
"""

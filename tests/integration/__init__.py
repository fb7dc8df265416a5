"""
Integration tests against live backends.

Opt-in: set USE_REAL_REDIS=1 to run the Redis round trips.
"""

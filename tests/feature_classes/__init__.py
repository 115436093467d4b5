"""Feature classes used by discovery tests."""

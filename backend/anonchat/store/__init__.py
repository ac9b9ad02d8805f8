"""Chat storage module.

Users, rooms and messages are stored in DuckDB by ChatStore, which is also
the realtime engine's credential directory, room directory and message store.
"""

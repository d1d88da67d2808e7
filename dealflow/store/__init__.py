"""Persistence: record types, decimal-string codec and the user-scoped Store.

- records.py: Deal, Contact, Activity, Intelligence, Scenario
- codec.py: float <-> decimal string at the store boundary
- repository.py: thread-safe tables mirrored to JSON files
"""

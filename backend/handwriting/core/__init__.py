# handwriting/core/__init__.py
"""
Core data layer modules.
Contains the pieces every component builds on:
- replica: in-memory store of all entities
- channels: independently synchronized slices of the replica
- session: explicit session value and role guards
- errors: error taxonomy
- notices: side channel for background failures
- bootstrap: data layer construction from configuration
"""

"""Infrastructure Layer — database sessions, SQLAlchemy stores, logging setup.

Invariants:
    - Everything that touches IO outside the HTTP layer lives here
    - Implements the Protocols declared in core/repository_protocols.py
"""

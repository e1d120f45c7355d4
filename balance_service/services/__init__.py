"""Services Layer — imperative shell orchestrating store IO around core rules.

Invariants:
    - Each public operation opens exactly one atomic session
    - Services never build SQL; they talk to stores through core Protocols
"""

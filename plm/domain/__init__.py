"""Domain layer: enums, exceptions and workflow rules (no I/O)."""

"""Pure finance primitives (no I/O)."""

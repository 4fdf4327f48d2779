"""Cross-cutting infrastructure: error taxonomy and logging setup."""

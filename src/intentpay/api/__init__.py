"""HTTP checkout API."""

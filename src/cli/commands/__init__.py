"""CLI command registrations."""

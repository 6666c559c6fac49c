"""JSON API for the workflow configuration."""

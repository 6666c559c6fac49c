"""Derive JIRA workflow configuration (roles and mappings) from project metadata."""

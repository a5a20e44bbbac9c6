"""REST interface for the contacts service."""

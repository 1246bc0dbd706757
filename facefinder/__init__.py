"""Event photo face finder service."""

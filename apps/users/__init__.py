"""Identities, roles and authentication for the hostel portal."""

"""Shared project plumbing: health endpoint and API error rendering."""

"""Rooms, residents, enrollment, complaints and their dashboards."""

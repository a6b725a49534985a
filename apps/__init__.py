"""Django apps of the hostel portal."""

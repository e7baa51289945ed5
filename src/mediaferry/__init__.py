"""MediaFerry - exactly-once media transfer from devices to remote destinations."""

__version__ = "0.4.0"

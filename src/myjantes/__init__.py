"""MyJantes: back office for a wheel refurbishing workshop."""

__version__ = "0.1.0"

"""sysdash: live terminal dashboard for CPU, memory and disk usage."""

__version__ = "0.1.0"

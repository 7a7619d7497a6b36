"""BlastRadius: impact scoring and dependency-ordered planning for change requests."""

__version__ = "0.3.0"

__all__ = ["__version__"]

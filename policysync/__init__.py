"""Feed metadata -> Ranger read-only grant synchronization."""

__version__ = "0.1.0"

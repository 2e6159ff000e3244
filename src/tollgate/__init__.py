"""Policy-enforcing wrapper around the real git binary."""

__version__ = "0.4.0"

__all__ = ["__version__"]

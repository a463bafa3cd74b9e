"""Interactive terminal explorer for gRPC servers."""

__version__ = "0.4.0"

__all__ = ["__version__"]

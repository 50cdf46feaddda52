"""Building blocks of a database proxy: context, protocol types, databases, registry and server."""

__version__ = "0.1.0"
__all__ = ["context", "proto", "database", "resource", "server"]
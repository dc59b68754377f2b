"""Customer persona detection and Good/Better/Best smart home bundle recommendations."""

__version__ = "1.0.0"

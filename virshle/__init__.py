"""virshle package."""

__all__ = [
    "clean",
    "cli",
    "codec",
    "config",
    "constants",
    "detect",
    "exceptions",
    "files",
    "models",
    "utils",
]

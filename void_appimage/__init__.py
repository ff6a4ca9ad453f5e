"""Package a pre-built Void editor build into a Linux AppImage."""

__version__ = "0.1.0"

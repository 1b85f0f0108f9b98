"""Select, connect, and re-pair Bluetooth devices from the terminal."""

__version__ = "0.1.0"

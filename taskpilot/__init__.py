"""Task manager actor that configures, spawns and drives a chat-state actor."""

__version__ = "0.1.0"
__all__ = ["__version__"]
"""Chat bot commands, argument parsing, and a message handler with permissions and cooldowns."""

__version__ = "0.1.0"
"""AI-driven DEX auto-trading engine: sessions, periodic decisions and guarded swaps."""

__version__ = "0.1.0"

"""transferconsole - operator console for batched token transfers."""

__version__ = "0.1.0"

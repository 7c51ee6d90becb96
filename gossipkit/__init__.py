"""Building blocks for gossip-based cluster membership."""

__version__ = "0.1.0"
"""MetaFuse - tiered music metadata aggregator."""

__version__ = "0.1.0"

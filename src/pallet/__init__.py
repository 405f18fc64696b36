"""pallet - order lifecycle tracking for apparel decoration shops."""

__version__ = "0.1.0"

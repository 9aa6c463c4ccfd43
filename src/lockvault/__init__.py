"""Time-weighted token-locking vault with batched reward distribution."""

__version__ = "0.1.0"

"""$tABS backend: tracked-token market snapshots for the Abstract chain."""

__version__ = "0.3.0"

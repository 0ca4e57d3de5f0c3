"""Concrete adapters for the interfaces in ``chunkwise/interfaces/``."""

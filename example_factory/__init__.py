"""FHEVM Example Factory -- registry, scaffolding and merge engine for FHEVM examples."""

__version__ = "0.1.0"

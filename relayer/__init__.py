"""Ethash proof relayer: header + epoch commitment + dataset proofs -> one record."""

__version__ = "0.1.0"

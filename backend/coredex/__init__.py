"""COREDEX news credibility backend."""

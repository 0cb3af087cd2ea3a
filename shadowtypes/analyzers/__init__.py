"""Signature building, similarity strategies, classification and supplemented checks."""

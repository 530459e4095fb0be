"""Keeps a Qdrant search collection in sync with a Firestore collection."""

__version__ = "0.1.0"

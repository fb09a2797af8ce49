"""Antigen test reader: image normalisation and verdicts behind a FastAPI endpoint."""

__version__ = "0.1.0"

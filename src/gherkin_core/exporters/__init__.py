"""Exporters for parsed documents and compiled pickles."""

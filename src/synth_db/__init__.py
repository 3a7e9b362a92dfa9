"""Seed a relational schema with LLM-generated rows in foreign-key order."""

__version__ = "0.1.0"

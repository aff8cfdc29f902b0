"""Agents orchestrating retrieval and answer generation."""

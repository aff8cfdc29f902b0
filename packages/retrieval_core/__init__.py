"""
Core retrieval logic for the news research tool.

This package contains:
- Data models for segments and the vector store
- Chunking of raw page text into overlapping segments
- Embedding gateway, similarity scoring and the JSON vector store
- Context selection with per-source coverage
"""

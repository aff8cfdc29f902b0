"""
Web ingestion for the news research tool.

This package is responsible for:
- Settings (environment / .env driven)
- Fetching pages and extracting their readable text
- Turning a batch of URLs into ordered, embedded segments
- A CLI for ingesting pages and asking questions locally
"""

"""
Ingestion — document loading, chunking, embedding and the one-shot index build.

This module converts a directory of raw documents (text, JSON, JSON-Lines,
CSV, Word, PDF) into embedded chunks stored in a vector index.
"""

"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture semantic meaning.
Stored chunks carry their vector; briefs and queries are embedded at
composition time.  The only implementation is the OpenAI-compatible
adapter; which model it uses is a settings concern.
"""

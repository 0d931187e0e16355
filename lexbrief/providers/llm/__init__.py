"""LLM provider adapters.

OpenAILLMProvider is the single implementation of ILLMProvider; it is used
only to write summary chunks during ingestion.
"""

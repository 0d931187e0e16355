"""Document store implementations.

Both implementations serve IDocumentStore (knowledge chunks) and
IBriefProvider (published briefs):
    - SQLiteDocumentStore   -- aiosqlite, persisted at DOCUMENT_STORE_PATH
    - InMemoryDocumentStore -- dicts, for tests and throwaway sessions
"""

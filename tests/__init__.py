import os

# Tests run against a throwaway in-memory database unless told otherwise.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

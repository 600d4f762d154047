import os

# Settings are read at import time; point everything at local test doubles first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["TMDB_ACCESS_TOKEN"] = ""
os.environ["TMDB_API_KEY"] = ""
os.environ["GEMINI_API_KEY"] = ""

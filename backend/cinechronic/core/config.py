
import os
from pydantic_settings import BaseSettings



class Settings(BaseSettings):
    environment: str = os.getenv("ENVIRONMENT", "development")
    port: int = int(os.getenv("PORT", "3000"))

    db_user: str = os.getenv("POSTGRES_USER", "cinechronic")
    db_password: str = os.getenv("POSTGRES_PASSWORD", "cinechronic")
    db_name: str = os.getenv("POSTGRES_DB", "cinechronic")
    database_url: str = os.getenv(
        "DATABASE_URL",
        f"postgresql+psycopg2://{os.getenv('POSTGRES_USER', 'cinechronic')}:{os.getenv('POSTGRES_PASSWORD', 'cinechronic')}@db:5432/{os.getenv('POSTGRES_DB', 'cinechronic')}",
    )

    # JWT signing
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_expires_in: str = os.getenv("JWT_EXPIRES_IN", "7d")

    # TMDB: bearer token is preferred, API key is the fallback
    tmdb_access_token: str = os.getenv("TMDB_ACCESS_TOKEN", "")
    tmdb_api_key: str = os.getenv("TMDB_API_KEY", "")
    watch_region: str = os.getenv("WATCH_REGION", "MX")

    # Gemini (optional; heuristics are used when missing)
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    gemini_timeout_seconds: float = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "30"))

    # Daily director recommendations
    daily_generation_hour: int = int(os.getenv("DAILY_GENERATION_HOUR", "5"))
    # Empty means the server's local timezone
    recommendation_timezone: str = os.getenv("RECOMMENDATION_TIMEZONE", "")
    recommendation_count: int = int(os.getenv("RECOMMENDATION_COUNT", "4"))
    director_pool_size: int = int(os.getenv("DIRECTOR_POOL_SIZE", "8"))
    min_movies_per_recommendation: int = int(os.getenv("MIN_MOVIES_PER_RECOMMENDATION", "4"))
    max_movies_per_recommendation: int = int(os.getenv("MAX_MOVIES_PER_RECOMMENDATION", "6"))
    director_movie_pool: int = int(os.getenv("DIRECTOR_MOVIE_POOL", "12"))
    verify_concurrency: int = int(os.getenv("VERIFY_CONCURRENCY", "4"))
    # generative | trending | crew_mining
    discovery_strategy: str = os.getenv("DISCOVERY_STRATEGY", "generative")
    require_latin_american_director: bool = os.getenv("REQUIRE_LATIN_AMERICAN_DIRECTOR", "false").lower() == "true"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

settings = Settings()

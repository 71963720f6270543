from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Optional: model override used only for quiz grading
	gemini_model_quiz: str | None = Field(default=None, validation_alias="GEMINI_MODEL_QUIZ")
	# Low temperature keeps grading verdicts stable across retries
	gemini_temperature: float = Field(default=0.3, validation_alias="GEMINI_TEMPERATURE")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Veritas", validation_alias="OPENROUTER_TITLE")

	# Identity: bearer tokens issued by the auth service are verified with this secret
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	anon_cookie_max_age: int = Field(default=60 * 60 * 24 * 365, validation_alias="ANON_COOKIE_MAX_AGE")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Watch timer reporting policy
	watch_min_total_seconds: float = Field(default=30, validation_alias="WATCH_MIN_TOTAL_SECONDS")
	watch_min_delta_seconds: float = Field(default=5, validation_alias="WATCH_MIN_DELTA_SECONDS")
	watch_report_interval_seconds: float = Field(default=30, validation_alias="WATCH_REPORT_INTERVAL_SECONDS")

	# Client-side transport
	api_base_url: str = Field(default="http://localhost:8000", validation_alias="API_BASE_URL")
	http_timeout_seconds: float = Field(default=30, validation_alias="HTTP_TIMEOUT_SECONDS")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()

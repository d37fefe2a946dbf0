from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Database (Postgres in production, SQLite for local runs and tests)
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Bearer token verification
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

	# Roles in admin_users that may read other users' attempts (comma separated)
	admin_roles: str = Field(default="super_admin,admin", validation_alias="ADMIN_ROLES")

	# Reports and listings
	report_default_window_days: int = Field(default=30, validation_alias="REPORT_DEFAULT_WINDOW_DAYS")
	attempts_page_limit_max: int = Field(default=100, validation_alias="ATTEMPTS_PAGE_LIMIT_MAX")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def admin_role_set(self) -> set[str]:
		return {r.strip() for r in self.admin_roles.split(",") if r.strip()}

settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict

# Categories served by the config endpoint, in the order the client expects them.
CREDENTIAL_CATEGORIES = ("analyzer", "dashboard", "food", "tools")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Gateway
    gateway_cooldown_ms: int = 4000
    gateway_attempt_timeout_seconds: float = 20.0
    gateway_default_category: str = "dashboard"
    gateway_json_response: bool = False
    # Trusted config endpoint; empty means pools come from the local environment
    gateway_config_url: str = ""
    gateway_config_timeout_seconds: float = 10.0

    # Upstream model
    gemini_model: str = "gemini-2.0-flash"
    gemini_api_url_template: str = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    # Credential slots, three per category
    analyzer_gem_1: str = ""
    analyzer_gem_2: str = ""
    analyzer_gem_3: str = ""
    dashboard_gem_1: str = ""
    dashboard_gem_2: str = ""
    dashboard_gem_3: str = ""
    food_gem_1: str = ""
    food_gem_2: str = ""
    food_gem_3: str = ""
    tools_gem_1: str = ""
    tools_gem_2: str = ""
    tools_gem_3: str = ""

    # Public client settings, passed through the config endpoint untouched
    public_firebase_api_key: str = ""
    public_firebase_auth_domain: str = ""
    public_firebase_database_url: str = ""
    public_firebase_project_id: str = ""
    public_firebase_storage_bucket: str = ""
    public_firebase_messaging_sender_id: str = ""
    public_firebase_app_id: str = ""
    public_firebase_measurement_id: str = ""

    @property
    def credential_pools(self) -> dict[str, list[str]]:
        """Raw credential slots per category. Blank slots are kept; the pool filters them."""
        return {
            category: [getattr(self, f"{category}_gem_{slot}") for slot in (1, 2, 3)]
            for category in CREDENTIAL_CATEGORIES
        }

    @property
    def firebase_config(self) -> dict[str, str]:
        return {
            "apiKey": self.public_firebase_api_key,
            "authDomain": self.public_firebase_auth_domain,
            "databaseURL": self.public_firebase_database_url,
            "projectId": self.public_firebase_project_id,
            "storageBucket": self.public_firebase_storage_bucket,
            "messagingSenderId": self.public_firebase_messaging_sender_id,
            "appId": self.public_firebase_app_id,
            "measurementId": self.public_firebase_measurement_id,
        }

    # App
    app_env: str = "development"
    app_debug: bool = True

    # CORS
    allowed_origins: str = "*"  # comma-separated, e.g. "https://app.example.com,https://admin.example.com"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    errors: list[str] = []

    if settings.gateway_cooldown_ms < 0:
        errors.append("GATEWAY_COOLDOWN_MS must not be negative")

    if settings.gateway_attempt_timeout_seconds <= 0:
        errors.append("GATEWAY_ATTEMPT_TIMEOUT_SECONDS must be positive")

    if "{model}" not in settings.gemini_api_url_template:
        errors.append("GEMINI_API_URL_TEMPLATE must contain a {model} placeholder")

    if settings.app_env == "production":
        if settings.allowed_origins == "*":
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")
        if settings.gateway_config_url and not settings.gateway_config_url.startswith("https://"):
            errors.append("GATEWAY_CONFIG_URL must use https in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))

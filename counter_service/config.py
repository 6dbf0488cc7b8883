from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/claims"
    log_level: str = "INFO"

    # Every instance must resolve the same row, so the name is fixed per deployment
    counter_name: str = "global"
    claim_number_baseline: int = 100000

    # Observability
    otlp_endpoint: str = "http://jaeger:4318/v1/traces"

    model_config = {"env_file": ".env"}


settings = Settings()

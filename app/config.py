from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"

    # Claim counter service (the only source of claim numbers)
    counter_service_url: str = "http://claim-counter:8000"
    http_timeout: float = 15.0

    # Attachment limits (keep in line with the dealer form)
    max_attachment_files: int = 10
    max_attachment_size_bytes: int = 10 * 1024 * 1024

    # CORS
    allowed_origins: list[str] = [
        "http://127.0.0.1:5500",
        "https://boatmateparts.com",
        "https://www.boatmateparts.com",
        "http://boatmateparts.com",
        "http://www.boatmateparts.com",
    ]

    # HubSpot
    hubspot_token: str = ""
    hubspot_base_url: str = "https://api.hubapi.com"
    hs_ticket_pipeline: str = "760934225"
    hs_ticket_stage: str = "1108043102"
    hs_files_folder_path: str = "/warranty-intake"

    # Confirmation email (Brevo)
    email_enabled: bool = False
    email_api_endpoint: str = "https://api.brevo.com/v3/smtp/email"
    email_api_key: str = ""
    from_email: str = ""
    from_name: str = ""
    reply_to: str = ""
    email_logo_url: str = ""

    # Observability
    otlp_endpoint: str = "http://jaeger:4318/v1/traces"

    model_config = {"env_file": ".env"}

    @property
    def email_configured(self) -> bool:
        return self.email_enabled and bool(
            self.email_api_endpoint and self.email_api_key and self.from_email
        )


settings = Settings()

"""Process-wide configuration read from the environment."""

from __future__ import annotations

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SES_CONFIGURATION_SET = "engageninja-email-events"


class MessagingSettings(BaseSettings):
    """Settings shared by the resolver and every adapter.

    Per-tenant carrier secrets live in the credential store; only the
    process-wide key and fallbacks are configured here.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    encryption_key: SecretStr
    twilio_messaging_service_sid: str | None = None
    twilio_timeout_seconds: float = Field(default=10.0, gt=0)
    ses_configuration_set: str = DEFAULT_SES_CONFIGURATION_SET

    # Demo progression delays, in seconds after send
    demo_delivered_delay_min: float = Field(default=3.0, ge=0)
    demo_delivered_delay_max: float = Field(default=5.0, ge=0)
    demo_read_delay_min: float = Field(default=5.0, ge=0)
    demo_read_delay_max: float = Field(default=10.0, ge=0)

    @model_validator(mode="after")
    def _check_delay_ranges(self) -> MessagingSettings:
        if self.demo_delivered_delay_min > self.demo_delivered_delay_max:
            raise ValueError("demo_delivered_delay_min must not exceed demo_delivered_delay_max")
        if self.demo_read_delay_min > self.demo_read_delay_max:
            raise ValueError("demo_read_delay_min must not exceed demo_read_delay_max")
        return self

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .screens import ValidationStep


class Settings(BaseSettings):
    """Configuration for the checkout navigation layer.

    Values are loaded from environment variables and `.env`.

    Notes:
    - Durations are expressed in minutes unless the name says otherwise.
    - Monitored transitions map "<from>><to>" to the validation step that
      is normally produced on the <from> screen.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Navigation
    CHECKOUT_HOST_TIMEOUT_SECONDS: float = Field(default=2.5)
    CHECKOUT_MAX_FAILURES: int = Field(default=3)

    # Session store
    CHECKOUT_SESSION_TTL_MINUTES: int = Field(default=30)
    CHECKOUT_SESSION_MAX: int = Field(default=100)
    CHECKOUT_SESSION_REFRESH_MINUTES: int = Field(default=5)
    CHECKOUT_SESSION_SWEEP_MINUTES: int = Field(default=60)
    CHECKOUT_FORM_STATE_TTL_MINUTES: int = Field(default=120)

    # Validation tracking
    CHECKOUT_VALIDATION_EXPIRY_MINUTES: int = Field(default=120)
    CHECKOUT_VALIDATION_MAX_PER_ORDER: int = Field(default=10)
    CHECKOUT_VALIDATION_SWEEP_MINUTES: int = Field(default=15)
    CHECKOUT_MONITORED_TRANSITIONS: dict[str, str] = Field(
        default_factory=lambda: {
            "delivery_info>order_summary": ValidationStep.DELIVERY_INFO.value,
            "order_summary>payment_method": ValidationStep.ORDER_SUMMARY.value,
        }
    )

    # Back-navigation history
    CHECKOUT_HISTORY_MAX: int = Field(default=10)

    # Logging (diagnostic; rotated daily)
    CHECKOUT_LOG_DIR: Path = Field(default=Path("_logs"))
    CHECKOUT_LOG_LEVEL: str = Field(default="INFO")
    CHECKOUT_LOG_BACKUP_COUNT: int = Field(default=14)
    # Structured navigation events go to the `checkout_nav.events` logger.
    CHECKOUT_LOG_EVENTS: bool = Field(default=True)


def parse_monitored_transitions(raw: dict[str, str]) -> dict[tuple[str, str], ValidationStep]:
    """Turn the settings mapping into `{(from_screen, to_screen): step}`.

    Raises ValueError for malformed keys or unknown steps.
    """
    parsed: dict[tuple[str, str], ValidationStep] = {}
    for key, step in raw.items():
        source, sep, target = str(key).partition(">")
        source, target = source.strip(), target.strip()
        if not sep or not source or not target:
            raise ValueError(f"Monitored transition key must look like 'from>to', got {key!r}")
        try:
            parsed[(source, target)] = ValidationStep(str(step).strip())
        except ValueError as exc:
            raise ValueError(f"Unknown validation step {step!r} for transition {key!r}") from exc
    return parsed


def load_settings() -> Settings:
    s = Settings()
    # Fail fast on bad bypass-detection config rather than at first navigation.
    parse_monitored_transitions(s.CHECKOUT_MONITORED_TRANSITIONS)
    return s

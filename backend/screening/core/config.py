"""
Application Configuration with Type Safety and Validation
Following 12-factor app principles

The settings object is built once at process start and handed to every
component by reference. It is frozen: components never mutate it and never
read the environment on their own.
"""
from enum import Enum
from functools import lru_cache
from typing import Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class LowConfidencePolicy(str, Enum):
    """What to do when the primary provider answers with low confidence"""
    ACCEPT = "accept"        # keep the primary result as final
    ESCALATE = "escalate"    # ask the next provider for a second opinion


DEFAULT_SCORING_WEIGHTS: Dict[str, float] = {
    "skills": 45,
    "experience": 30,
    "education": 15,
    "additional": 10,
}

DEFAULT_JOB_DESCRIPTION = (
    "General technical position requiring strong problem-solving skills "
    "and relevant experience."
)


class Settings(BaseSettings):
    """
    Pipeline settings with environment variable support.
    All settings are validated and typed.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Resume Screening Pipeline"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Root log level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")
    log_file: Optional[str] = Field(default=None, description="Optional JSON log file")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Storage
    database_path: str = Field(default="./screening.db", description="SQLite database path")
    active_folder: str = Field(default="./resumes", description="Folder holding stored attachments")
    data_retention_days: int = Field(default=90, ge=1, description="Days to keep stored files and PII")
    dashboard_url: str = Field(default="http://localhost:8000/api/stats", description="Link used in notifications")

    # AI providers
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-2.0-flash", description="Gemini model")
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514", description="Anthropic model")
    anthropic_base_url: str = Field(default="https://api.anthropic.com/v1")
    llm_temperature: float = Field(default=0.3, description="Sampling temperature for scoring")
    llm_max_tokens: int = Field(default=2000, description="Max tokens for scoring responses")
    provider_timeout: float = Field(default=60.0, description="Per-request timeout in seconds")

    # Retry / escalation
    max_retries: int = Field(default=3, ge=1, description="Attempts per provider")
    retry_base_delay: float = Field(default=2.0, ge=0, description="Delay unit between attempts (seconds)")
    retry_jitter: float = Field(default=0.0, ge=0, description="Max random seconds added to each delay")
    message_deadline_seconds: float = Field(default=600.0, gt=0, description="Budget for one message")
    low_confidence_threshold: float = Field(default=0.70, ge=0, le=1)
    low_confidence_policy: LowConfidencePolicy = Field(default=LowConfidencePolicy.ESCALATE)

    # Scoring thresholds
    high_score_threshold: float = Field(default=80, description="Score that triggers an urgent notification")
    medium_score_threshold: float = Field(default=65, description="Lower bound of the medium tier")

    # Slack webhooks
    slack_webhook_urgent: Optional[str] = Field(default=None)
    slack_webhook_daily: Optional[str] = Field(default=None)
    slack_webhook_alerts: Optional[str] = Field(default=None)
    notification_timeout: float = Field(default=10.0)

    # Inbox
    imap_server: str = Field(default="imap.gmail.com")
    imap_port: int = Field(default=993)
    email_address: Optional[str] = Field(default=None, description="Inbox to read applications from")
    email_password: Optional[str] = Field(default=None)
    imap_mailbox: str = Field(default="recruiting", description="Mailbox / label holding applications")
    processed_mailbox: Optional[str] = Field(default="Processed", description="Mailbox processed mail is copied to")
    max_messages_per_run: int = Field(default=50, ge=1)

    # Attachments
    min_text_length: int = Field(default=50, description="Minimum characters for a usable document")
    supported_extensions: str = Field(
        default=".pdf,.docx,.doc,.txt,.rtf,.odt",
        description="Accepted document extensions (comma-separated)",
    )
    cover_letter_keywords: str = Field(
        default="coverletter,letter,motivation",
        description="Filename keywords marking a cover letter (comma-separated)",
    )

    @field_validator("low_confidence_policy", mode="before")
    @classmethod
    def _normalize_policy(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def supported_extensions_list(self) -> List[str]:
        """Get supported extensions as a list"""
        exts = []
        for ext in self.supported_extensions.split(','):
            ext = ext.strip().lower()
            if ext:
                exts.append(ext if ext.startswith('.') else f'.{ext}')
        return exts

    @property
    def cover_letter_keywords_list(self) -> List[str]:
        return [kw.strip().lower() for kw in self.cover_letter_keywords.split(',') if kw.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    Uses lru_cache so the process builds exactly one settings object.
    """
    return Settings()

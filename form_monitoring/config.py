"""Configuration management for the form monitoring engine."""

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_ERROR_SELECTORS = [
    ".error",
    ".error-message",
    ".invalid-feedback",
    ".form-error",
    ".field-error",
    ".alert-danger",
    "[role=alert]",
]


class BrowserSettings(BaseModel):
    """Browser session configuration."""
    headless: bool = Field(default=True, description="Run browser in headless mode")
    chromium_path: Optional[str] = Field(default=None, description="Explicit Chromium executable path")
    viewport_width: int = Field(default=1280, description="Viewport width in pixels")
    viewport_height: int = Field(default=720, description="Viewport height in pixels")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User agent for every session")
    navigation_timeout_ms: int = Field(default=30000, description="Timeout for the initial navigation")


class TimeoutSettings(BaseModel):
    """Bounded waits used while driving a form."""
    element_ms: int = Field(default=10000, description="Per-element fill/click timeout")
    consent_probe_ms: int = Field(default=5000, description="How long to look for a consent dialog")
    consent_dismiss_ms: int = Field(default=5000, description="How long to wait for the dialog to go away")
    settle_ms: int = Field(default=5000, description="Fallback delay raced against the post-submit load event")


class ConsentSettings(BaseModel):
    """Consent dialog affordances."""
    accept_selector: str = Field(
        default="#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll",
        description="Button that accepts all cookies",
    )
    dialog_selector: str = Field(default="#CybotCookiebotDialog", description="Dialog container")


class ClassifierSettings(BaseModel):
    """Outcome classification settings."""
    form_marker: str = Field(default="/register", description="URL fragment meaning 'still on the form'")
    error_selectors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ERROR_SELECTORS),
        description="Selectors scanned for inline validation errors",
    )
    email_token_separator: str = Field(default="+", description="Joins the email local part and the run token")


class SourceSettings(BaseModel):
    """Where target records come from."""
    kind: str = Field(default="yaml", description="yaml|csv|sheets")
    path: Optional[str] = Field(default="config/targets.yaml", description="File path for yaml/csv sources")
    sheet_range: str = Field(default="config!A2:L", description="Sheets range holding target rows")


class SinkSettings(BaseModel):
    """Where outcome records go."""
    kind: str = Field(default="csv", description="csv|jsonl|sheets")
    path: Optional[str] = Field(default="results/results.csv", description="File path for csv/jsonl sinks")
    sheet_range: str = Field(default="results!A:F", description="Sheets range receiving result rows")


class MonitorSettings(BaseModel):
    """Main configuration for the form monitoring engine."""

    log_level: str = Field(default="INFO", description="Logging level")
    artifacts_dir: str = Field(default="screenshots", description="Directory for failure screenshots")
    schedule_cron: str = Field(default="0 */1 * * *", description="Cron expression for scheduled batches")

    # Secrets are taken from the environment only, never from the YAML file.
    sheet_id: Optional[str] = Field(default=None, description="Google Sheets spreadsheet id")
    sheets_access_token: Optional[str] = Field(default=None, description="OAuth bearer token for Sheets")

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
    consent: ConsentSettings = Field(default_factory=ConsentSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    source: SourceSettings = Field(default_factory=SourceSettings)
    sink: SinkSettings = Field(default_factory=SinkSettings)


def load_settings(config_path: Optional[str] = None) -> MonitorSettings:
    """Load configuration from file, then apply environment overrides."""
    if config_path is None:
        config_path = os.getenv("FORM_MONITOR_CONFIG", "config/form_monitoring.yaml")

    config_data = {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

    config_data.pop("sheet_id", None)
    config_data.pop("sheets_access_token", None)

    env_overrides = {
        "log_level": os.getenv("LOG_LEVEL"),
        "artifacts_dir": os.getenv("FORM_MONITOR_ARTIFACTS_DIR"),
        "schedule_cron": os.getenv("FORM_MONITOR_SCHEDULE_CRON"),
        "sheet_id": os.getenv("SHEET_ID"),
        "sheets_access_token": os.getenv("GOOGLE_SHEETS_ACCESS_TOKEN"),
    }
    for key, value in env_overrides.items():
        if value is not None and value.strip():
            config_data[key] = value.strip()

    browser = dict(config_data.get("browser") or {})
    headless = os.getenv("BROWSER_HEADLESS")
    if headless is not None:
        browser["headless"] = headless.lower() in ("true", "1", "yes")
    chromium_path = os.getenv("CHROMIUM_PATH")
    if chromium_path:
        browser["chromium_path"] = chromium_path
    if browser:
        config_data["browser"] = browser

    return MonitorSettings(**config_data)

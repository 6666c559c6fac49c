"""Configuration management for JIRA Workflow."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import tomli_w


@dataclass
class Config:
    """Configuration for the JIRA connection and the workflow store."""

    jira_url: str
    jira_email: str
    jira_api_token: str
    project_key: str
    store_path: str | None = None

    def validate(self) -> list[str]:
        """Validate configuration values. Returns list of error messages."""
        errors: list[str] = []

        if not self.jira_url:
            errors.append("JIRA URL is required")
        else:
            parsed = urlparse(self.jira_url)
            if parsed.scheme not in ("http", "https"):
                errors.append("JIRA URL must start with http:// or https://")
            if not parsed.netloc:
                errors.append("JIRA URL must include a domain")

        if not self.jira_email:
            errors.append("JIRA email is required")
        elif "@" not in self.jira_email:
            errors.append("JIRA email must be a valid email address")

        if not self.jira_api_token:
            errors.append("JIRA API token is required")

        if not self.project_key:
            errors.append("JIRA project key is required")

        return errors


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return Path.home() / ".jira-workflow"


def get_config_path() -> Path:
    """Get the configuration file path."""
    return get_config_dir() / "config.toml"


def get_store_path(config: Config) -> Path:
    """Get the path of the file holding the workflow mapping tables."""
    if config.store_path:
        return Path(config.store_path).expanduser()
    return get_config_dir() / "workflow.toml"


def config_exists() -> bool:
    """Check if configuration file exists."""
    return get_config_path().exists()


def load_config() -> Config:
    """Load configuration from TOML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration not found at {config_path}. "
            "Create ~/.jira-workflow/config.toml to set up."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    jira_section = data.get("jira", {})
    store_section = data.get("store", {})

    config = Config(
        jira_url=jira_section.get("url", ""),
        jira_email=jira_section.get("email", ""),
        jira_api_token=jira_section.get("api_token", ""),
        project_key=jira_section.get("project_key", ""),
        store_path=store_section.get("path"),
    )

    errors = config.validate()
    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    return config


def save_config(config: Config) -> None:
    """Save configuration to TOML file."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    config_path = get_config_path()

    data: dict = {
        "jira": {
            "url": config.jira_url,
            "email": config.jira_email,
            "api_token": config.jira_api_token,
            "project_key": config.project_key,
        },
    }

    if config.store_path:
        data["store"] = {"path": config.store_path}

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)

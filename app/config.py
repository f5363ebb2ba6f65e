"""Application configuration management."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    These settings are automatically loaded from the .env file or environment variables.
    The API key should be stored in an environment variable, not hardcoded.

    Attributes:
        ideogram_api_key: Ideogram API key (required to serve requests)
        ideogram_base_url: Root URL of the Ideogram API
        ideogram_output_dir: Directory where generated images are saved
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        request_timeout: Optional timeout in seconds for API calls and downloads
        server_port: Port for the Gradio UI
        run_integration_tests: Whether to run integration tests
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # API Keys
    ideogram_api_key: str = ""

    # Upstream
    ideogram_base_url: str = "https://api.ideogram.ai"
    request_timeout: Optional[float] = None  # None = no timeout

    # Storage
    ideogram_output_dir: str = "ideogram_images"

    # Application Settings
    log_level: str = "INFO"
    server_port: int = 7861

    # Testing
    run_integration_tests: bool = False

    def validate_required_keys(self) -> None:
        """Validate that required API keys are present.

        Raises:
            ConfigurationError: If the Ideogram API key is missing
        """
        if not self.ideogram_api_key:
            raise ConfigurationError(
                "IDEOGRAM_API_KEY environment variable is required. "
                "Please set it in your .env file or environment variables. "
                "Get your key from: https://ideogram.ai/manage-api"
            )


# Global settings instance
settings = Settings()

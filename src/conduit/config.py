"""Configuration settings for the application."""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # Completion backend
    BACKEND: str = "anthropic"  # Options: tgi, openai, anthropic
    BACKEND_TIMEOUT: float = 60.0
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-latest"
    TGI_ENDPOINT: str = "http://tgi:8080/generate"

    # Orchestration loop
    MAX_TOOL_ITERATIONS: int = 5
    TOOL_TIMEOUT_SECONDS: float = 60.0

    # Agent definition (AGENT_DEFINITION_FILE wins over the inline fields when set)
    AGENT_NAME: str = "Conduit"
    AGENT_DESCRIPTION: str = ""
    AGENT_TOOLS: List[str] = []
    AGENT_DEFINITION_FILE: str | None = None
    TOOL_MODULES: List[str] = []  # Imported at startup so their tools self-register

    # Knowledge retrieval
    KNOWLEDGE_ENABLED: bool = False
    VECTOR_DB_HOST: str = "chroma"  # Service name in docker-compose
    VECTOR_DB_PORT: int = 8000
    KNOWLEDGE_TOP_K: int = 3

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

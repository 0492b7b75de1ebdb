"""
Configuration management for the Code Arena sandbox.
Supports environment variables and .env files.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SandboxConfig(BaseSettings):
    """Execution sandbox limits, budgets and toolchain binaries."""

    model_config = SettingsConfigDict(env_prefix="SANDBOX_")

    # Output limits
    output_clip_limit: int = Field(
        default=8000,
        description="Maximum characters surfaced per output stream"
    )
    max_capture_bytes: int = Field(
        default=1024 * 1024,
        description="Bytes buffered per stream before further output is discarded"
    )
    max_code_length: int = Field(
        default=20000,
        description="Maximum accepted source length in characters"
    )

    # Per-backend wall-clock budgets (seconds)
    javascript_timeout: float = Field(default=2.0, description="In-process JavaScript budget")
    javascript_memory_limit: int = Field(
        default=64 * 1024 * 1024,
        description="QuickJS heap limit in bytes"
    )
    python_timeout: float = Field(default=3.0)
    go_timeout: float = Field(default=5.0)
    ruby_timeout: float = Field(default=4.0)
    php_timeout: float = Field(default=4.0)
    c_compile_timeout: float = Field(default=5.0)
    c_run_timeout: float = Field(default=2.5)
    java_compile_timeout: float = Field(default=6.0)
    java_run_timeout: float = Field(default=3.0)
    csharp_compile_timeout: float = Field(default=6.0)
    csharp_run_timeout: float = Field(default=4.0)
    sql_timeout: float = Field(default=4.5)

    # Toolchain binaries
    python_binary: str = Field(default="python3")
    gcc_binary: str = Field(default="gcc")
    gxx_binary: str = Field(default="g++")
    javac_binary: str = Field(default="javac")
    java_binary: str = Field(default="java")
    go_binary: str = Field(default="go")
    ruby_binary: str = Field(default="ruby")
    php_binary: str = Field(default="php")
    csharp_compilers: list[str] = Field(
        default=["mcs", "csc"],
        description="C# compilers tried in order"
    )
    mono_binary: str = Field(default="mono")

    # Workspaces
    workspace_root: Path | None = Field(
        default=None,
        description="Parent directory for per-run workspaces (system temp dir if unset)"
    )
    workspace_prefix: str = Field(default="codearena-")

    reject_unknown_languages: bool = Field(
        default=False,
        description="Reject source for languages without a security rule set"
    )


class PracticeConfig(BaseSettings):
    """Practice arena (graded challenges) configuration."""

    model_config = SettingsConfigDict(env_prefix="PRACTICE_")

    catalog_path: Path | None = Field(
        default=None,
        description="Challenge catalog JSON file (bundled catalog if unset)"
    )
    blocked_identities: list[str] = Field(
        default_factory=list,
        description="Identities refused by the default access policy"
    )


class ServerConfig(BaseSettings):
    """Server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    workers: int = Field(default=1, description="Number of workers")
    debug: bool = Field(default=False, description="Debug mode")
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__"
    )

    app_name: str = "Code Arena"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = Field(default=True, description="Debug mode")

    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    practice: PracticeConfig = Field(default_factory=PracticeConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator("debug", mode="before")
    @classmethod
    def validate_debug(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

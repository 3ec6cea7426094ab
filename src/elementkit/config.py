"""Configuration file loading and validation."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, HttpUrl, ValidationError, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from .consts import LOG_FILE_DEFAULT, RENDER_MAX_WORKERS, TIMEOUT_RENDER_REQUEST
from .enums import RenderKind
from .errors import ConfigException
from .registry import SchemaRegistry
from .remote import CredentialProvider, HttpRenderService, RemoteRenderCoordinator
from .renderer import ElementRenderer
from .schema import ElementTypeDescriptor, RenderOptions

logger = logging.getLogger(__name__)


class RenderServiceConfig(BaseModel):
    """Authoritative render service configuration."""

    enabled: bool = False
    base_url: HttpUrl | None = None
    timeout: int = Field(default=TIMEOUT_RENDER_REQUEST, ge=1)
    max_workers: int = Field(default=RENDER_MAX_WORKERS, ge=1)
    token: str | None = None

    @model_validator(mode="before")
    @classmethod
    def default_enabled(cls, values):
        if not isinstance(values, dict):
            return values

        if "enabled" not in values:
            values["enabled"] = bool(values.get("base_url"))
        return values

    @model_validator(mode="after")
    def validate_render_service_config(self) -> "RenderServiceConfig":
        if not self.enabled:
            return self

        if self.base_url is None:
            raise ValueError("render_service.base_url is required when render_service.enabled is true")
        return self


class RenderConfig(BaseModel):
    """Default render options."""

    show_labels: bool = True
    read_only: bool = False
    compact: bool = False
    stylesheet_url: str | None = None
    css_classes: dict[str, str] = Field(default_factory=dict)


class Config(BaseSettings):
    """Application configuration."""

    log_file: str = Field(default=LOG_FILE_DEFAULT)

    render_service: RenderServiceConfig = Field(default_factory=RenderServiceConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    element_types: dict[int, ElementTypeDescriptor] = Field(default_factory=dict)
    render_kinds: dict[int, RenderKind] = Field(default_factory=dict)

    model_config = SettingsConfigDict(
        env_prefix="ELEMENTKIT_",
        env_nested_delimiter="__",
    )

    @field_validator("element_types", mode="before")
    @classmethod
    def fill_type_ids(cls, v):
        if not isinstance(v, dict):
            return v
        filled = {}
        for key, value in v.items():
            if isinstance(value, dict):
                value = dict(value)
                if "type_id" not in value and "typeId" not in value:
                    value["type_id"] = key
            filled[key] = value
        return filled

    @model_validator(mode="after")
    def check_type_id_keys(self) -> "Config":
        for key, descriptor in self.element_types.items():
            if descriptor.type_id != key:
                raise ValueError(
                    f"element_types.{key} declares type_id {descriptor.type_id}"
                )
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )

    @classmethod
    def load_from_file(cls, config_path: str) -> "Config":
        """Load configuration from specified path."""
        path = Path(config_path)
        if not path.exists():
            raise ConfigException(f"Configuration file not found: {config_path}")

        class _Config(cls):
            model_config = SettingsConfigDict(
                toml_file=str(path),
                env_prefix="ELEMENTKIT_",
                env_nested_delimiter="__",
            )

        try:
            return _Config()
        except ValidationError as e:
            error_lines = ["Configuration validation failed:"]
            for error in e.errors():
                loc = " -> ".join(str(item) for item in error["loc"])
                error_lines.append(f"  - {loc}: {error['msg']}")
            raise ConfigException("\n".join(error_lines)) from e
        except ValueError as e:
            raise ConfigException(f"Invalid configuration file {config_path}: {e}") from e

    @classmethod
    def load_optional(cls, config_path: Optional[str]) -> "Config":
        """Load ``config_path`` when it exists, else defaults plus environment."""
        if config_path and os.path.exists(config_path):
            return cls.load_from_file(config_path)
        logger.debug(f"No configuration file at {config_path}, using defaults")
        return cls()

    def get_registry(self) -> SchemaRegistry:
        return SchemaRegistry.from_overrides(self.element_types)

    def get_renderer(self) -> ElementRenderer:
        return ElementRenderer(self.get_registry(), self.render_kinds)

    def get_render_options(self, **overrides: Any) -> RenderOptions:
        values = {
            "show_labels": self.render.show_labels,
            "read_only": self.render.read_only,
            "compact": self.render.compact,
            "css_classes": self.render.css_classes,
        }
        values.update(overrides)
        return RenderOptions.model_validate(values)

    def get_remote_coordinator(
        self, credentials: Optional[CredentialProvider] = None
    ) -> RemoteRenderCoordinator:
        """Build a remote coordinator; without a provider the configured token is used."""
        if not self.render_service.enabled:
            raise ConfigException("Render service is disabled in configuration")

        service = HttpRenderService(str(self.render_service.base_url), timeout=self.render_service.timeout)
        if credentials is None:
            token = self.render_service.token
            credentials = lambda: token  # noqa: E731
        return RemoteRenderCoordinator(
            service,
            credentials=credentials,
            timeout=self.render_service.timeout,
            max_workers=self.render_service.max_workers,
        )

from typing import Annotated

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource

from modernsocket.bootstrap.config.loader import get_configfile
from modernsocket.core.models.cause import BinaryType
from modernsocket.core.models.config import TransportConfig


class TransportSettings(BaseModel):
    open_timeout: Annotated[
        float | None,
        Field(
            description=(
                "Maximum time (in seconds) allowed for the opening handshake.\n"
                "A connection that does not open in time fails before opening.\n"
                "Set to null to wait indefinitely."
            ),
            default=10.0
        )
    ]

    close_timeout: Annotated[
        float | None,
        Field(
            description=(
                "Maximum time (in seconds) to wait for the closing handshake\n"
                "before the TCP connection is dropped."
            ),
            default=10.0
        )
    ]

    max_size: Annotated[
        int | None,
        Field(
            description=(
                "Maximum size (in bytes) of an incoming message.\n"
                "Larger messages close the connection with code 1009."
            ),
            default=1 * 1024 * 1024
        )
    ]

    ping_interval: Annotated[
        float | None,
        Field(
            description="Delay (in seconds) between keepalive pings. Null disables keepalive.",
            default=20.0
        )
    ]

    ping_timeout: Annotated[
        float | None,
        Field(
            description="Maximum time (in seconds) to wait for a pong.",
            default=20.0
        )
    ]

    @field_validator("open_timeout", "close_timeout", "ping_interval", "ping_timeout", "max_size")
    @classmethod
    def validate_positive(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("must be strictly positive or null")
        return v

    def to_config(self) -> TransportConfig:
        return TransportConfig(
            open_timeout=self.open_timeout,
            close_timeout=self.close_timeout,
            max_size=self.max_size,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
        )


class ClientSettings(BaseModel):
    protocols: Annotated[
        list[str],
        Field(
            description=(
                "Sub-protocols offered during the opening handshake when none\n"
                "are given on the command line."
            ),
            default_factory=list
        )
    ]

    binary_type: Annotated[
        BinaryType,
        Field(
            description="Python type used to deliver binary messages: 'bytes' or 'bytearray'.",
            default=BinaryType.bytes
        )
    ]


class ModernSocketSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MODERNSOCKET_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    transport: Annotated[
        TransportSettings,
        Field(
            description=(
                "Transport configuration.\n"
                "Controls handshake and closing timeouts, message size limits and\n"
                "keepalive behavior of the underlying WebSocket client."
            ),
            default_factory=TransportSettings
        )
    ]

    client: Annotated[
        ClientSettings,
        Field(
            description="Defaults applied to every connection opened by the client.",
            default_factory=ClientSettings
        )
    ]

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
            YamlConfigSettingsSource(settings_cls, yaml_file=get_configfile()),
        )

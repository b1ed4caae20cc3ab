from typing import Annotated

from pydantic import BaseModel, Field, field_validator
from pydantic_core.core_schema import ValidationInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from mstart.bootstrap.config.loader import get_configfile
from mstart.core.models.config import ClientConfig, DEFAULT_MAX_FRAME_LENGTH, DEFAULT_PORT
from mstart.core.models.state import Action


class ServerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description="IP address or hostname of the M-START server.",
            default="127.0.0.1"
        )
    ]

    port: Annotated[
        int,
        Field(
            description="TCP port of the M-START server.",
            default=DEFAULT_PORT,
            ge=1,
            le=65535,
        )
    ]


class SessionSettings(BaseModel):
    activity: Annotated[
        str,
        Field(
            description=(
                "Name of the activity this client links itself to.\n"
                "It must match the activity name referenced in the M-START server\n"
                "database; it is sent once, in the handshake, on every connection."
            ),
            min_length=1,
        )
    ]


class LinkSettings(BaseModel):
    reconnect_delay: Annotated[
        float,
        Field(
            description="Delay (in seconds) between two failed connect attempts.",
            default=20.0,
            gt=0,
        )
    ]

    read_retry_delay: Annotated[
        float,
        Field(
            description=(
                "Delay (in seconds) before reading again after an I/O error,\n"
                "when `read_failure_action` is `retry`."
            ),
            default=2.0,
            gt=0,
        )
    ]

    connect_timeout: Annotated[
        float,
        Field(
            description="Maximum duration (in seconds) of a single connect attempt.",
            default=10.0,
            gt=0,
        )
    ]

    max_frame_length: Annotated[
        int,
        Field(
            description=(
                "Exclusive upper bound of a frame length, in bytes.\n"
                "Frames declaring a length outside (0, max_frame_length) are never decoded."
            ),
            default=DEFAULT_MAX_FRAME_LENGTH,
            gt=1,
        )
    ]

    max_retries: Annotated[
        int | None,
        Field(
            description="Failed attempts after which reconnecting stops. Unset retries forever.",
            default=None,
        )
    ]

    backoff_factor: Annotated[
        float,
        Field(
            description="Growth of the reconnect delay after each failure; 1 keeps it fixed.",
            default=1.0,
            ge=1.0,
        )
    ]

    backoff_maximum: Annotated[
        float | None,
        Field(
            description="Cap of the reconnect delay. Defaults to `reconnect_delay`.",
            default=None,
        )
    ]

    backoff_jitter: Annotated[
        float,
        Field(
            description="Maximum random jitter (in seconds) added to each reconnect delay.",
            default=0.0,
            ge=0,
        )
    ]

    read_failure_action: Annotated[
        Action,
        Field(
            description=(
                "Reaction of the read loop to an I/O error:\n"
                "`reconnect` rebuilds the link, `retry` reads again on the same socket."
            ),
            default=Action.reconnect,
        )
    ]

    frame_bounds_action: Annotated[
        Action,
        Field(
            description=(
                "Reaction of the read loop to an out of bounds frame length:\n"
                "`reconnect` rebuilds the link, `drop` skips the length and reads on."
            ),
            default=Action.reconnect,
        )
    ]

    @field_validator("max_retries", "backoff_maximum")
    @classmethod
    def validate_positive(cls, v: float | None, info: ValidationInfo) -> float | None:
        if v is not None and v <= 0:
            raise ValueError(f"{info.field_name} must be positive when set")
        return v

    @field_validator("read_failure_action")
    @classmethod
    def validate_read_action(cls, v: Action) -> Action:
        if v is Action.drop:
            raise ValueError("read failures can only be retried or reconnected")
        return v

    @field_validator("frame_bounds_action")
    @classmethod
    def validate_bounds_action(cls, v: Action) -> Action:
        if v is Action.retry:
            raise ValueError("out of bounds frames can only be dropped or reconnected")
        return v


class MStartConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MSTART_",
        env_nested_delimiter="__",
        extra="allow"
    )

    server: Annotated[
        ServerSettings,
        Field(
            description="Location of the M-START server.",
            default_factory=ServerSettings,
        )
    ]

    session: Annotated[
        SessionSettings,
        Field(
            description=(
                "Session configuration.\n"
                "Defines the activity this client is bound to on the server."
            )
        )
    ]

    link: Annotated[
        LinkSettings,
        Field(
            description=(
                "Link behavior.\n"
                "Controls reconnect pacing, read retries, frame bounds and the\n"
                "reaction of the read loop to each kind of failure."
            ),
            default_factory=LinkSettings,
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
        # MSTART_SERVER__HOST and friends override the YAML file
        return (
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=get_configfile()),
        )

    def to_client_config(self) -> ClientConfig:
        link = self.link
        return ClientConfig(
            host=self.server.host,
            port=self.server.port,
            activity=self.session.activity,
            reconnect_delay=link.reconnect_delay,
            read_retry_delay=link.read_retry_delay,
            max_frame_length=link.max_frame_length,
            connect_timeout=link.connect_timeout,
            max_retries=link.max_retries,
            backoff_factor=link.backoff_factor,
            backoff_maximum=link.backoff_maximum,
            backoff_jitter=link.backoff_jitter,
            read_failure_action=link.read_failure_action,
            frame_bounds_action=link.frame_bounds_action,
        )

import json
from functools import lru_cache

from pydantic import ValidationError

from mstart.bootstrap.config.settings import MStartConfig
from mstart.bootstrap.observer import LoggingObserver
from mstart.core.client import MStartClient
from mstart.infra.osc_codec import OscCodec


@lru_cache
def get_client() -> MStartClient:
    config = get_config()

    return MStartClient(
        config=config.to_client_config(),
        codec=OscCodec(),
        observer=get_observer(),
    )


@lru_cache
def get_observer() -> LoggingObserver:
    return LoggingObserver()


@lru_cache
def get_config() -> MStartConfig:
    try:
        return MStartConfig()  # type: ignore[call-arg]
    except ValidationError as ex:
        errors = json.dumps(ex.errors(include_url=False), indent=2, default=str)
        raise SystemExit(f"[config] Invalid configuration:\n{errors}")

import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

TOPICBUS_LOGGING_LEVEL = os.getenv('TOPICBUS_LOGGING_LEVEL', 'WARNING').upper()  # WARNING normally, otherwise DEBUG when testing
LIBRARY_VERSION = os.getenv('LIBRARY_VERSION', '0.1.0')


class EventBusConfig(BaseModel):
    """Validated EventBus construction options."""

    model_config = ConfigDict(extra='forbid', validate_assignment=True)

    enable_logging: bool = False
    max_listeners: int = Field(default=100, gt=0)
    wildcard_events: bool = True
    async_events: bool = True
    remove_faulty_listeners: bool = False
    max_history_size: int = Field(default=1000, ge=0)
    max_history_args: int = Field(default=10, ge=0)
    max_tracked_topics: int | None = None

    @field_validator('max_tracked_topics')
    @classmethod
    def _validate_max_tracked_topics(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError(f'max_tracked_topics must be > 0 or None, got {value}')
        return value


__all__ = ['EventBusConfig', 'LIBRARY_VERSION', 'TOPICBUS_LOGGING_LEVEL']

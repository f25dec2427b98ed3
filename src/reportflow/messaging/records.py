"""Records exchanged with a queue transport."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RecordMetadata:
    topic: str
    partition: int
    offset: int | str


@dataclass(frozen=True)
class Record:
    """One delivered message.

    ``offset`` is an integer position for the in-memory log and a stream
    entry id for Redis.
    """

    topic: str
    partition: int
    offset: int | str
    key: str
    value: bytes
    headers: dict[str, str] = field(default_factory=dict)
    delivery_count: int = 1

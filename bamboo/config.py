from dataclasses import dataclass


@dataclass
class StorageConfig:
    url: str
    transactions_supported: bool = True
    echo: bool = False
    pool_pre_ping: bool = True

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.url:
            raise ValueError("url must be a non-empty SQLAlchemy database URL")


@dataclass
class RelayConfig:
    channel: str = "bamboo:changes"
    poll_timeout_s: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.channel:
            raise ValueError("channel cannot be empty")
        if self.poll_timeout_s <= 0:
            raise ValueError(
                "poll_timeout_s must be > 0; a zero timeout turns run() into a busy loop"
            )

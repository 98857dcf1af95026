from .bus import ChangeBus, Subscription
from .redis_relay import RedisRelay

__all__ = [
    "ChangeBus",
    "Subscription",
    "RedisRelay",
]

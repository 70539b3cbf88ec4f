# app/common/redis_client.py
import redis
from django.conf import settings


_redis = None


def get_redis():
    global _redis
    if _redis is None:
        _redis = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            decode_responses=True,  # str instead of bytes
            socket_timeout=0.5,
            socket_connect_timeout=0.5,
        )
    return _redis


def ping_redis() -> bool:
    # health only: failures are reported, not raised
    try:
        return bool(get_redis().ping())
    except redis.RedisError:
        return False

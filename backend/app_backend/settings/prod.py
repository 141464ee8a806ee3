"""Production overrides: Redis-backed channels, locked-down hosts and CORS."""

from .settings import *

DEBUG = False
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(',')

CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000").split(',')

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

# Driver locations and ride events must reach every worker process
CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels_redis.core.RedisChannelLayer",
        "CONFIG": {
            "hosts": [REDIS_URL],
        },
    }
}

# The mock authoriser is for demos only; point this at a real gateway
PAYMENT_AUTHORIZER = os.getenv("PAYMENT_AUTHORIZER", "services.payments.MockPaymentAuthorizer")

LOGGING['root']['level'] = os.getenv("ROOT_LOG_LEVEL", "WARNING")

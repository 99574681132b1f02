import tempfile

from .base import *

SECRET_KEY = "test-secret-key-not-for-production"
DEBUG = False
ENVIRONMENT = "test"
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [app for app in INSTALLED_APPS if app not in ("cloudinary", "cloudinary_storage")]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "feedbackchain-tests",
    }
}

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    },
}

CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

MEDIA_ROOT = tempfile.mkdtemp(prefix="feedbackchain-media-")
MEDIA_URL = "/media/"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": [],
    "DEFAULT_THROTTLE_RATES": {
        "anon": None,
        "user": None,
        "login": None,
        "password_reset": None,
        "verify_purchase": None,
    },
}

# every remote tier off: heuristic analysis, local hash store, demo accounts
ENABLE_AI = True
ENABLE_BLOCKCHAIN = True
ENABLE_QR_VERIFICATION = True
ENABLE_NOTIFICATIONS = True
OPENAI_API_KEY = ""
HUGGINGFACE_API_KEY = ""
IPFS_API_KEY = ""
BLOCKCHAIN_RPC_URL = ""
SECONDARY_API_URL = ""
AUTH_PROVIDER = "demo"
FIREBASE_API_KEY = ""
AUTH0_DOMAIN = ""
ADMIN_EMAILS = ["root@example.com"]

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"null": {"class": "logging.NullHandler"}},
    "root": {"handlers": ["null"]},
    "loggers": {
        "django": {"handlers": ["null"], "propagate": False},
        "rest_framework": {"handlers": ["null"], "propagate": False},
        "celery": {"handlers": ["null"], "propagate": False},
    },
}

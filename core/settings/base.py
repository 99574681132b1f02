from pathlib import Path
from datetime import timedelta
from dotenv import load_dotenv
import os

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv()


def env_flag(name, default="false"):
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def env_list(name, default=""):
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


debug = os.environ.get('DEBUG')
secret_key = os.environ.get('KEY_SECRET')


SECRET_KEY = secret_key

if debug == "True":
    DEBUG = True
else:
    DEBUG = False

ENVIRONMENT = os.environ.get("ENVIRONMENT", "development" if DEBUG else "production")
APP_VERSION = os.environ.get("APP_VERSION", "1.0.0")

ALLOWED_HOSTS = []


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # local apps
    "users.apps.UsersConfig",
    "review_rating.apps.ReviewRatingConfig",
    "review_analysis.apps.ReviewAnalysisConfig",
    "notification_app.apps.NotificationAppConfig",
    "analytics_app.apps.AnalyticsAppConfig",

    # external app
    "django_filters",

    # third-party apps
    'rest_framework',
    'rest_framework_simplejwt',
    'rest_framework_simplejwt.token_blacklist',

    "corsheaders",
    "channels",

    # cloudinary apps
    "cloudinary",
    "cloudinary_storage",

    # documentation
    'drf_spectacular',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',

    # cors middleware
    "corsheaders.middleware.CorsMiddleware",

    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',

    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',

    # services shared by the views (request.app_context)
    "core.middleware.AppContextMiddleware",
]

ROOT_URLCONF = 'core.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / "templates"],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'core.wsgi.application'
ASGI_APPLICATION = 'core.asgi.application'

# custom user
AUTH_USER_MODEL = "users.User"

# API Base configuration
REST_FRAMEWORK = {
    # JWT from the Authorization header or the access_token cookie
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'users.authentication.JWTAuthentication',
    ),
    # Use drf-spectacular for schema generation
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',

    # {success: false, message, errors?} for every error response
    'EXCEPTION_HANDLER': 'utils.exception_handler.envelope_exception_handler',

    'DEFAULT_THROTTLE_CLASSES': [
        'rest_framework.throttling.AnonRateThrottle',
        'rest_framework.throttling.UserRateThrottle',
    ],

    'DEFAULT_THROTTLE_RATES': {
        'anon': '60/minute',
        'user': '120/minute',
        'login': '5/minute',
        'password_reset': '3/minute',
        'verify_purchase': '10/minute',
    },
}

# JWT token Base configuration

access_token_lifetime = os.environ.get("ACCESS_TOKEN_LIFETIME_MINUTES", 60)
refresh_token_lifetime = os.environ.get("REFRESH_TOKEN_LIFETIME_MINUTES", 60 * 24 * 7)

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(access_token_lifetime)),
    "REFRESH_TOKEN_LIFETIME": timedelta(minutes=int(refresh_token_lifetime)),
    'AUTH_HEADER_TYPES': ('Bearer',),
    'ROTATE_REFRESH_TOKENS': True,
    'BLACKLIST_AFTER_ROTATION': True,
}


SPECTACULAR_SETTINGS = {
    'TITLE': 'FeedbackChain',
    'DESCRIPTION': 'API documentation for the FeedbackChain review service.',
    'VERSION': APP_VERSION,
    'SERVE_INCLUDE_SCHEMA': False,
    'SECURITY': [{'JWTAuth': []}],
}


# redis for caching

redis_url = os.environ.get("REDIS_URL", "redis://127.0.0.1:6379/1")

CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': redis_url,  # Redis server location and database index
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
        },
        'KEY_PREFIX': 'feedbackchain'  # Prefix for cache keys to avoid collisions
    }
}


# channels: websocket groups live in redis as well

channels_redis_url = os.environ.get("CHANNELS_REDIS_URL", "redis://127.0.0.1:6379/2")

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels_redis.core.RedisChannelLayer",
        "CONFIG": {
            "hosts": [channels_redis_url],
        },
    },
}


# celery

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://127.0.0.1:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_IGNORE_RESULT = True

CELERY_BEAT_SCHEDULE = {
    "replay-offline-review-queue": {
        "task": "review_rating.tasks.replay_offline_queue",
        "schedule": 300.0,  # every 5 minutes
    },
}


# changed into postgres database for development as well as production

db_host = os.environ.get('DB_HOST')
db_port = os.environ.get('DB_PORT')
db_name = os.environ.get('DB_NAME')
db_user = os.environ.get('DB_USER')
db_pass = os.environ.get('DB_PASS')

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': db_name,
        'USER': db_user,
        'PASSWORD': db_pass,
        'HOST': db_host,
        'PORT': db_port,
    }
}


# Password validation

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {'min_length': 8},
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# Internationalization

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)

STATIC_URL = '/static/'
STATIC_ROOT = Path(__file__).resolve().parents[2] / "staticfiles"

# Default primary key field type

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# service endpoints

API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8000/api")
SECONDARY_API_URL = os.environ.get("SECONDARY_API_URL", "")
FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")
WEBSOCKET_URL = os.environ.get("WEBSOCKET_URL", "ws://localhost:8000")
WS_PATH = os.environ.get("WS_PATH", "ws").strip("/")

DEFAULT_FROM_EMAIL = os.environ.get("DEFAULT_FROM_EMAIL", "no-reply@feedbackchain.local")


# feature flags

ENABLE_AI = env_flag("ENABLE_AI", "true")
ENABLE_BLOCKCHAIN = env_flag("ENABLE_BLOCKCHAIN", "true")
ENABLE_QR_VERIFICATION = env_flag("ENABLE_QR_VERIFICATION", "true")
ENABLE_NOTIFICATIONS = env_flag("ENABLE_NOTIFICATIONS", "true")


# review analysis

OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-3.5-turbo")
HUGGINGFACE_API_KEY = os.environ.get("HUGGINGFACE_API_KEY", "")
HUGGINGFACE_MODEL = os.environ.get("HUGGINGFACE_MODEL", "distilbert-base-uncased-finetuned-sst-2-english")


# content hashes: remote ledger settings, local hash store when unset

BLOCKCHAIN_RPC_URL = os.environ.get("BLOCKCHAIN_RPC_URL", "")
CONTRACT_ADDRESS = os.environ.get("CONTRACT_ADDRESS", "")
IPFS_API_URL = os.environ.get("IPFS_API_URL", "https://api.pinata.cloud")
IPFS_GATEWAY = os.environ.get("IPFS_GATEWAY", "https://gateway.pinata.cloud/ipfs")
IPFS_API_KEY = os.environ.get("IPFS_API_KEY", "")


# authentication providers

AUTH_PROVIDER = os.environ.get("AUTH_PROVIDER", "")
FIREBASE_API_KEY = os.environ.get("FIREBASE_API_KEY", "")
AUTH0_DOMAIN = os.environ.get("AUTH0_DOMAIN", "")
AUTH0_CLIENT_ID = os.environ.get("AUTH0_CLIENT_ID", "")
AUTH0_CLIENT_SECRET = os.environ.get("AUTH0_CLIENT_SECRET", "")
AUTH0_AUDIENCE = os.environ.get("AUTH0_AUDIENCE", "")
AUTH0_CONNECTION = os.environ.get("AUTH0_CONNECTION", "Username-Password-Authentication")
ADMIN_EMAILS = [email.lower() for email in env_list("ADMIN_EMAILS")]


# uploads

UPLOAD_MAX_SIZE_MB = int(os.environ.get("UPLOAD_MAX_SIZE_MB", 10))
MAX_IMAGES_PER_REVIEW = 5
DATA_UPLOAD_MAX_MEMORY_SIZE = UPLOAD_MAX_SIZE_MB * 1024 * 1024


# logging

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
        },
        'django.request': {
            'handlers': ['console'],
            'level': 'ERROR',
            'propagate': False,
        },
        'rest_framework': {
            'handlers': ['console'],
            'level': os.environ.get('APP_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'celery': {
            'handlers': ['console'],
            'level': 'INFO',
        },
    },
}


# import cloudinary settings:

from .cloudinary_settings import *

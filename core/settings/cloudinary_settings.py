import os

# Consolidate Cloudinary configuration from environment variables.
# The cloudinary package reads CLOUDINARY from Django settings on first import,
# so it must not be imported while the settings module is still loading.
CLOUDINARY = {
    'cloud_name': os.environ.get("CLOUDINARY_CLOUD_NAME"),
    'api_key': os.environ.get("CLOUDINARY_API_KEY"),
    'api_secret': os.environ.get("CLOUDINARY_API_SECRET"),
}

# Settings read by django-cloudinary-storage.
CLOUDINARY_STORAGE = {
    'CLOUD_NAME': CLOUDINARY['cloud_name'],
    'API_KEY': CLOUDINARY['api_key'],
    'API_SECRET': CLOUDINARY['api_secret'],
}

# review images go to Cloudinary; static files are overridden per environment
STORAGES = {
    "default": {
        "BACKEND": "cloudinary_storage.storage.MediaCloudinaryStorage",
    },
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
}
# Cloudinary serves the media files, so MEDIA_URL stays empty.
MEDIA_URL = ""

from django.apps import AppConfig


class UsersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'users'

    def ready(self):
        # registers the JWT security scheme with drf-spectacular
        from . import openapi  # noqa: F401

from django.apps import AppConfig


class ReviewAnalysisConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'review_analysis'
    verbose_name = 'Review analysis'

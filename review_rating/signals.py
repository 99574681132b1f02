from django.db.models import F
from django.db.models.functions import Greatest
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from users.models import User
from .models import Review


@receiver(post_save, sender=Review)
def increment_review_count(sender, instance, created, **kwargs):
    if created:
        User.objects.filter(pk=instance.author_id).update(review_count=F('review_count') + 1)


@receiver(post_delete, sender=Review)
def decrement_review_count(sender, instance, **kwargs):
    User.objects.filter(pk=instance.author_id).update(review_count=Greatest(F('review_count') - 1, 0))

from django.db import models
from django.db.models import F
from django.contrib.auth.models import AbstractUser, BaseUserManager
import uuid

from django.utils.translation import gettext_lazy as _


class UserManager(BaseUserManager):
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.Role.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):

    class Role(models.TextChoices):
        USER = "user", _("User")
        ADMIN = "admin", _("Admin")

    class Provider(models.TextChoices):
        DEMO = "demo", _("Demo")
        FIREBASE = "firebase", _("Firebase")
        AUTH0 = "auth0", _("Auth0")

    STARTING_REPUTATION = 100

    username = None
    first_name = None
    last_name = None

    id = models.UUIDField(default=uuid.uuid4, editable=False, db_index=True, primary_key=True)

    email = models.EmailField(unique=True, db_index=True)
    name = models.CharField(max_length=100, help_text="Display name (e.g John Doe)")
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.USER)
    avatar = models.URLField(blank=True, default="")

    reputation = models.IntegerField(default=STARTING_REPUTATION)
    review_count = models.PositiveIntegerField(default=0)
    helpful_votes = models.PositiveIntegerField(
        default=0,
        help_text="Helpful marks received on this user's reviews"
    )

    auth_provider = models.CharField(max_length=20, choices=Provider.choices, default=Provider.DEMO)
    external_id = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    class Meta:
        verbose_name_plural = _("Users")
        ordering = ["-created_at"]

    def __str__(self):
        return f"User email: {self.email}"

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN or self.is_staff

    def get_full_name(self):
        return self.name

    def get_short_name(self):
        return self.name.split(" ")[0] if self.name else self.email

    @classmethod
    def adjust_reputation(cls, user_id, delta, **counters):
        """Atomic counter update; never a read-modify-write in Python."""
        updates = {"reputation": F("reputation") + delta}
        for field, step in counters.items():
            updates[field] = F(field) + step
        return cls.objects.filter(pk=user_id).update(**updates)

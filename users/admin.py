from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _
from rest_framework_simplejwt.token_blacklist.admin import OutstandingTokenAdmin
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken

from .models import User


class CustomUserAdmin(BaseUserAdmin):
    model = User

    list_display = (
        "email", "name", "role", "reputation", "review_count", "auth_provider", "is_active", "is_staff"
    )
    list_filter = ("role", "auth_provider", "is_active", "is_staff")

    readonly_fields = ("id", "reputation", "review_count", "helpful_votes", "created_at")

    fieldsets = (
        (None, {
            "fields": ("id", "email", "password")
        }),
        (_("Profile"), {
            "fields": ("name", "avatar", "role", "auth_provider", "external_id")
        }),
        (_("Activity"), {
            "fields": ("reputation", "review_count", "helpful_votes"),
        }),
        (_("Permissions"), {
            "fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions"),
        }),
        (_("Important dates"), {
            "fields": ("last_login", "created_at"),
        }),
    )

    add_fieldsets = (
        (None, {
            "classes": ("wide",),
            "fields": ("email", "name", "role", "password1", "password2"),
        }),
    )

    search_fields = ("email", "name")
    ordering = ("email",)


admin.site.register(User, CustomUserAdmin)

admin.site.unregister(OutstandingToken)


@admin.register(OutstandingToken)
class SessionTokenAdmin(OutstandingTokenAdmin):
    """Issued refresh tokens; revoking one ends that session at its next refresh."""

    list_display = ("user", "jti", "created_at", "expires_at", "is_revoked")
    search_fields = ("user__email", "jti")
    actions = ["revoke_tokens"]

    @admin.display(boolean=True, description="Revoked")
    def is_revoked(self, obj):
        return BlacklistedToken.objects.filter(token=obj).exists()

    @admin.action(description="Revoke selected sessions")
    def revoke_tokens(self, request, queryset):
        revoked = 0
        for token in queryset:
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            revoked += created
        self.message_user(request, f"Revoked {revoked} session(s).")

"""
Explicitly constructed services shared by views, consumers and tasks.

Views reach them through `request.app_context` (installed by
`core.middleware.AppContextMiddleware`); tests swap in fakes with
`override_app_context`.
"""
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict

from django.conf import settings

from notification_app.broadcast import Broadcaster
from notification_app.services import NotificationService
from review_analysis.analyzers import AnalyzerChain
from review_analysis.content_store import ContentAddressStore, build_content_store
from review_analysis.tasks import schedule_enrichment
from review_rating.gateway import ReviewGateway
from review_rating.store import ReviewStore
from review_rating.verification import PurchaseVerifier, SimulatedPurchaseVerifier
from users.providers import AuthProvider, build_auth_provider


@dataclass
class AppContext:
    store: ReviewStore
    analyzer: AnalyzerChain
    content_store: ContentAddressStore
    purchase_verifier: PurchaseVerifier
    auth_provider: AuthProvider
    broadcaster: Broadcaster
    flags: Dict[str, bool] = field(default_factory=dict)

    def flag(self, name):
        return self.flags.get(name, False)

    def notifications_for(self, user):
        return NotificationService(
            user,
            broadcaster=self.broadcaster,
            enabled=self.flag("ENABLE_NOTIFICATIONS"),
        )

    def gateway_for(self, user, token=None):
        return ReviewGateway.build(self.store, notifier=self.notifications_for(user), token=token)


def build_app_context() -> AppContext:
    return AppContext(
        store=ReviewStore(on_content_change=schedule_enrichment),
        analyzer=AnalyzerChain.from_settings(),
        content_store=build_content_store(),
        purchase_verifier=SimulatedPurchaseVerifier(),
        auth_provider=build_auth_provider(),
        broadcaster=Broadcaster(),
        flags={
            "ENABLE_AI": settings.ENABLE_AI,
            "ENABLE_BLOCKCHAIN": settings.ENABLE_BLOCKCHAIN,
            "ENABLE_QR_VERIFICATION": settings.ENABLE_QR_VERIFICATION,
            "ENABLE_NOTIFICATIONS": settings.ENABLE_NOTIFICATIONS,
        },
    )


_app_context = None


def get_app_context() -> AppContext:
    global _app_context
    if _app_context is None:
        _app_context = build_app_context()
    return _app_context


@contextmanager
def override_app_context(context):
    global _app_context
    previous = _app_context
    _app_context = context
    try:
        yield context
    finally:
        _app_context = previous

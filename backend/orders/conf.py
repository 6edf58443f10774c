"""
Engine configuration read from ``settings.ORDER_ENGINE``.

Use the module-level ``engine_settings`` instance. Values are resolved on
first access so ``override_settings`` in tests takes effect after a
``engine_settings.reload()``.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


DEFAULTS: Dict[str, Any] = {
    "ORDER_NUMBER_PREFIX": "ORD-",
    "ORDER_NUMBER_DIGITS": 5,
    "DRAFT_ANONYMOUS_NAME": "anonymous-customer",
    "DRAFT_MAX_AGE_MINUTES": 60,
    "IDENTITY_RESOLVER": None,
    "PAYMENT_VERIFIER": None,
    "EVENT_GROUPS": {
        "order_created": ["orders", "dashboard"],
        "order_updated": ["orders", "dashboard"],
        "order_status_changed": ["orders", "display"],
        "order_verified": ["orders", "display"],
        "drafts_deleted": ["orders", "display"],
        "order_returned": ["orders", "dashboard"],
    },
}


def default_identity_resolver(user_id) -> str:
    """Fallback display name: the identifier itself."""
    return str(user_id)


class EngineSettings:
    """
    A LAZY singleton giving access to ``ORDER_ENGINE`` merged over defaults.
    """

    _instance: Optional["EngineSettings"] = None

    def __new__(cls) -> "EngineSettings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._values = None
        return cls._instance

    def _setup(self):
        configured = getattr(settings, "ORDER_ENGINE", {}) or {}
        unknown = set(configured) - set(DEFAULTS)
        if unknown:
            logger.warning(f"Ignoring unknown ORDER_ENGINE keys: {sorted(unknown)}")
        values = dict(DEFAULTS)
        values.update({k: v for k, v in configured.items() if k in DEFAULTS})
        self._values = values

    def reload(self):
        self._values = None

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if self._values is None:
            self._setup()
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"'EngineSettings' object has no attribute '{name}'")

    def groups_for(self, kind: str) -> List[str]:
        return list(self.EVENT_GROUPS.get(kind, ["orders"]))

    def get_identity_resolver(self) -> Callable[[Any], str]:
        path = self.IDENTITY_RESOLVER
        if not path:
            return default_identity_resolver
        return self._import(path, "IDENTITY_RESOLVER")

    def get_payment_verifier(self) -> Callable[[Any], bool]:
        path = self.PAYMENT_VERIFIER
        if not path:
            raise ImproperlyConfigured(
                "ORDER_ENGINE['PAYMENT_VERIFIER'] is not configured"
            )
        return self._import(path, "PAYMENT_VERIFIER")

    @staticmethod
    def _import(path, key):
        if callable(path):
            return path
        try:
            return import_string(path)
        except ImportError as e:
            raise ImproperlyConfigured(f"Could not import ORDER_ENGINE['{key}'] '{path}': {e}")


engine_settings = EngineSettings()


def resolve_display_name(user_id, name=None) -> Optional[str]:
    """Name to record for ``user_id``: the supplied one, else the identity provider's."""
    if name:
        return name
    if user_id in (None, ""):
        return None
    return engine_settings.get_identity_resolver()(user_id)


def _reload_engine_settings(*args, setting=None, **kwargs):
    if setting == "ORDER_ENGINE":
        engine_settings.reload()


setting_changed.connect(_reload_engine_settings)

import logging
from decimal import Decimal

from django.db import models, transaction
from django.utils.translation import gettext_lazy as _

from . import defaults
from .utils import deep_merge, restrict_to_known_keys

logger = logging.getLogger(__name__)


class SiteSetting(models.Model):
    """
    Platform-wide settings edited from the admin dashboard.

    A single row is expected; use SiteSetting.get_settings() rather than
    querying directly. Each JSON section only stores what differs from
    (or was explicitly saved over) the declared defaults.
    """
    general = models.JSONField(default=dict, blank=True, verbose_name=_("General"))
    notifications = models.JSONField(default=dict, blank=True, verbose_name=_("Notifications"))
    payments = models.JSONField(default=dict, blank=True, verbose_name=_("Payments"))
    security = models.JSONField(default=dict, blank=True, verbose_name=_("Security"))
    content = models.JSONField(default=dict, blank=True, verbose_name=_("Content"))

    updated_by = models.ForeignKey(
        'auth.User', on_delete=models.SET_NULL, blank=True, null=True,
        related_name='+', verbose_name=_("Last updated by"))
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Created"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Updated"))

    SECTION_NAMES = tuple(defaults.SECTIONS)

    class Meta:
        verbose_name = _("Site settings")
        verbose_name_plural = _("Site settings")

    def __str__(self):
        return f"Site settings ({self.section('general')['siteName']})"

    @classmethod
    def get_settings(cls):
        """Return the settings row, creating it on first access"""
        with transaction.atomic():
            instance = cls.objects.order_by('pk').first()
            if instance is None:
                instance = cls.objects.create()
                logger.info(f"Site settings created with defaults (id={instance.pk})")
        return instance

    def section(self, name):
        """Stored values of a section merged over its defaults"""
        if name not in defaults.SECTIONS:
            raise KeyError(name)
        stored = getattr(self, name) or {}
        return deep_merge(defaults.SECTIONS[name], stored)

    def as_dict(self):
        data = {name: self.section(name) for name in self.SECTION_NAMES}
        data['id'] = self.pk
        data['updatedAt'] = self.updated_at.isoformat() if self.updated_at else None
        return data

    def update_sections(self, payload, user=None):
        """
        Deep-merge a partial update into the stored sections and save.

        Unknown sections and keys are ignored. Returns the list of ignored
        paths.
        """
        ignored = []
        for name, value in payload.items():
            if name not in defaults.SECTIONS:
                ignored.append(name)
                continue
            if not isinstance(value, dict):
                ignored.append(name)
                continue
            kept, dropped = restrict_to_known_keys(value, defaults.SECTIONS[name])
            ignored.extend(f"{name}.{path}" for path in dropped)
            setattr(self, name, deep_merge(getattr(self, name) or {}, kept))

        if user is not None and getattr(user, 'is_authenticated', False):
            self.updated_by = user
        self.save()

        if ignored:
            logger.warning(f"Ignored unknown settings keys: {', '.join(ignored)}")
        return ignored

    @property
    def transaction_fee_percent(self):
        return Decimal(str(self.section('payments')['transactionFeePercent']))

    @property
    def premium_fee_percent(self):
        return Decimal(str(self.section('payments')['premiumFeePercent']))

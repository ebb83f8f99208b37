"""
Color themes applied globally to the storefront
"""
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

REQUIRED_COLORS = ('primary', 'secondary', 'accent', 'background', 'text')
OPTIONAL_COLORS = ('cardBackground', 'textSecondary')


def validate_colors(value):
    """A palette needs every required color as a non-empty string"""
    if not isinstance(value, dict):
        raise ValidationError(_("Colors must be an object"))
    missing = [key for key in REQUIRED_COLORS if not value.get(key)]
    if missing:
        raise ValidationError(_("Missing colors: %(keys)s"), params={'keys': ', '.join(missing)})
    for key in REQUIRED_COLORS + OPTIONAL_COLORS:
        if key in value and not isinstance(value[key], str):
            raise ValidationError(_("Color %(key)s must be a string"), params={'key': key})


def _isoformat(value):
    return value.isoformat() if value else None


class Theme(models.Model):
    """
    A named palette. At most one theme is active at a time; activation goes
    through ThemeService which deactivates the others in the same transaction.
    """
    name = models.CharField(max_length=50, unique=True, verbose_name=_("Name"))
    display_name = models.CharField(max_length=100, verbose_name=_("Display name"))
    description = models.TextField(blank=True, default='', verbose_name=_("Description"))

    is_active = models.BooleanField(default=False, verbose_name=_("Active"))
    start_date = models.DateTimeField(blank=True, null=True, verbose_name=_("Start date"))
    end_date = models.DateTimeField(blank=True, null=True, verbose_name=_("End date"))

    colors = models.JSONField(validators=[validate_colors], verbose_name=_("Colors"))
    background_image = models.URLField(max_length=500, blank=True, default='', verbose_name=_("Background image"))
    is_holiday = models.BooleanField(default=False, verbose_name=_("Holiday theme"))
    is_seasonal = models.BooleanField(default=True, verbose_name=_("Seasonal theme"))

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, blank=True, null=True,
        related_name='created_themes', verbose_name=_("Created by"))
    activated_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Activated at"))
    activated_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, blank=True, null=True,
        related_name='+', verbose_name=_("Activated by"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Created"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Updated"))

    class Meta:
        ordering = ('name',)
        verbose_name = _("Theme")
        verbose_name_plural = _("Themes")
        constraints = [
            models.UniqueConstraint(
                fields=['is_active'], condition=Q(is_active=True), name='theme_single_active'),
        ]

    def __str__(self):
        return self.display_name or self.name

    def save(self, *args, **kwargs):
        self.name = (self.name or '').strip().lower()
        super().save(*args, **kwargs)

    @property
    def version(self):
        """Changes on every write; clients poll the active theme with it"""
        return _isoformat(self.updated_at)

    def to_dict(self):
        return {
            'id': self.pk,
            'name': self.name,
            'displayName': self.display_name,
            'description': self.description,
            'isActive': self.is_active,
            'startDate': _isoformat(self.start_date),
            'endDate': _isoformat(self.end_date),
            'colors': self.colors,
            'backgroundImage': self.background_image,
            'isHoliday': self.is_holiday,
            'isSeasonal': self.is_seasonal,
            'createdBy': self.created_by_id,
            'activatedAt': _isoformat(self.activated_at),
            'activatedBy': self.activated_by_id,
            'createdAt': _isoformat(self.created_at),
            'updatedAt': _isoformat(self.updated_at),
            'version': self.version,
        }

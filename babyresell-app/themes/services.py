import logging
from datetime import date
from typing import Optional

from django.contrib.auth.models import User
from django.db import transaction
from django.utils import timezone

from .models import Theme
from .predefined import PREDEFINED_THEMES

logger = logging.getLogger(__name__)


def pick_seasonal_theme_name(today: date) -> str:
    """
    Name of the theme matching the date. Christmas (Dec 1-25) wins over the
    season, so does Halloween in October when a halloween holiday theme exists.
    """
    month, day = today.month, today.day

    if month == 12 and day <= 25:
        return 'christmas'
    if month == 10 and Theme.objects.filter(name='halloween', is_holiday=True).exists():
        return 'halloween'

    if (month == 12 and day >= 21) or month in (1, 2) or (month == 3 and day < 20):
        return 'winter'
    if month == 3 or month in (4, 5) or (month == 6 and day < 21):
        return 'spring'
    if month == 6 or month in (7, 8) or (month == 9 and day < 22):
        return 'summer'
    return 'fall'


class ThemeService:
    """Activation of themes, keeping a single active one"""

    @staticmethod
    def activate(theme: Theme, user: Optional[User] = None) -> Theme:
        now = timezone.now()
        with transaction.atomic():
            ThemeService.deactivate_all(exclude=theme)
            theme.is_active = True
            theme.activated_at = now
            theme.activated_by = user
            theme.save()

        logger.info(f"Theme {theme.name} activated by {user.username if user else 'system'}")
        return theme

    @staticmethod
    def deactivate_all(exclude: Optional[Theme] = None) -> int:
        queryset = Theme.objects.filter(is_active=True)
        if exclude is not None and exclude.pk:
            queryset = queryset.exclude(pk=exclude.pk)
        return queryset.update(is_active=False, updated_at=timezone.now())

    @staticmethod
    def get_or_create_predefined(name: str, user: Optional[User] = None) -> Theme:
        """
        Existing theme called `name`, or a new one from the predefined palettes.

        Raises Theme.DoesNotExist when the name is neither stored nor predefined.
        """
        name = name.strip().lower()
        theme = Theme.objects.filter(name=name).first()
        if theme is not None:
            return theme

        data = PREDEFINED_THEMES.get(name)
        if data is None:
            raise Theme.DoesNotExist(f'Predefined theme "{name}" not found')

        theme = Theme.objects.create(name=name, created_by=user, **data)
        logger.info(f"Predefined theme {name} created")
        return theme

    @staticmethod
    def activate_by_name(name: str, user: Optional[User] = None) -> Theme:
        theme = ThemeService.get_or_create_predefined(name, user)
        return ThemeService.activate(theme, user)

    @staticmethod
    def activate_seasonal(user: Optional[User] = None, today: Optional[date] = None) -> Theme:
        name = pick_seasonal_theme_name(today or timezone.localdate())
        return ThemeService.activate_by_name(name, user)

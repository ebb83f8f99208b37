from django.contrib import admin, messages
from django.utils.html import format_html, format_html_join

from .models import Theme
from .services import ThemeService


@admin.register(Theme)
class ThemeAdmin(admin.ModelAdmin):
    list_display = ('name', 'display_name', 'palette', 'is_active', 'is_holiday', 'is_seasonal', 'updated_at')
    list_filter = ('is_active', 'is_holiday', 'is_seasonal')
    search_fields = ('name', 'display_name')
    readonly_fields = ('is_active', 'activated_at', 'activated_by', 'created_by', 'created_at', 'updated_at')
    actions = ['activate_theme']
    fieldsets = (
        ('Theme', {
            'fields': ('name', 'display_name', 'description', 'colors', 'background_image')
        }),
        ('Schedule', {
            'fields': ('is_holiday', 'is_seasonal', 'start_date', 'end_date')
        }),
        ('Activation', {
            'fields': ('is_active', 'activated_at', 'activated_by')
        }),
        ('Dates', {
            'fields': ('created_by', 'created_at', 'updated_at')
        }),
    )

    def palette(self, obj):
        """Color swatches"""
        colors = obj.colors or {}
        return format_html_join(
            '', '<span title="{}" style="display:inline-block;width:14px;height:14px;background:{}"></span>',
            ((key, value) for key, value in colors.items()))
    palette.short_description = 'Palette'

    @admin.action(description='Activate selected theme')
    def activate_theme(self, request, queryset):
        if queryset.count() != 1:
            self.message_user(request, 'Select exactly one theme to activate', level=messages.ERROR)
            return
        theme = ThemeService.activate(queryset.get(), request.user)
        self.message_user(request, format_html('Theme <b>{}</b> activated', theme))

    def save_model(self, request, obj, form, change):
        if not change:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)

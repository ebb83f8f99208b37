from django.contrib import admin

from .models import SiteSetting


@admin.register(SiteSetting)
class SiteSettingAdmin(admin.ModelAdmin):
    """Single-row settings administration"""
    list_display = ('id', 'updated_by', 'updated_at')
    readonly_fields = ('created_at', 'updated_at', 'updated_by')
    fieldsets = (
        ('General', {
            'fields': ('general',)
        }),
        ('Notifications', {
            'fields': ('notifications',)
        }),
        ('Payments', {
            'fields': ('payments',)
        }),
        ('Security & content', {
            'fields': ('security', 'content')
        }),
        ('Dates', {
            'fields': ('created_at', 'updated_at', 'updated_by')
        }),
    )

    def has_add_permission(self, request):
        return not SiteSetting.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False

from django.contrib import admin
from .models import Profile, BabyItem


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'phone', 'location', 'subscription_status',
                    'stripe_account_id', 'payouts_enabled')
    list_filter = ('subscription_status', 'payouts_enabled')
    search_fields = ('user__username', 'user__email', 'phone')
    readonly_fields = ('date', 'date_update')


@admin.register(BabyItem)
class BabyItemAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'seller', 'price', 'currency', 'category', 'status', 'created_at')
    list_filter = ('status', 'category', 'condition')
    list_editable = ('status',)
    search_fields = ('title', 'seller__username')
    list_per_page = 25
    date_hierarchy = 'created_at'

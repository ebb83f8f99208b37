from django.contrib import admin

from .models import StripeWebhookLog, Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'item', 'buyer', 'seller', 'amount', 'platform_fee', 'status',
        'escrow_status', 'payout_status', 'created_at'
    )
    list_filter = ('status', 'escrow_status', 'payout_status', 'dispute_active', 'created_at')
    search_fields = ('payment_id', 'item__title', 'buyer__username', 'seller__username', 'tracking_number')
    readonly_fields = (
        'payment_id', 'amount', 'platform_fee', 'platform_fee_percentage', 'seller_payout',
        'stripe_fee', 'net_revenue', 'stripe_transfer_id', 'created_at', 'updated_at'
    )
    list_per_page = 25
    date_hierarchy = 'created_at'
    fieldsets = (
        ('Purchase', {
            'fields': ('item', 'buyer', 'seller', 'status', 'payment_method', 'payment_id')
        }),
        ('Amounts', {
            'fields': ('amount', 'currency', 'platform_fee', 'platform_fee_percentage',
                       'seller_payout', 'stripe_fee', 'net_revenue')
        }),
        ('Escrow & payout', {
            'fields': ('escrow_status', 'escrow_release_date', 'auto_release_date',
                       'payout_status', 'stripe_transfer_id', 'payout_error')
        }),
        ('Shipping', {
            'fields': ('shipping_name', 'shipping_line1', 'shipping_line2', 'shipping_city',
                       'shipping_state', 'shipping_country', 'shipping_postal_code',
                       'carrier', 'tracking_number', 'shipped_at', 'delivered_at', 'delivery_confirmed_at')
        }),
        ('Dispute', {
            'fields': ('dispute_active', 'dispute_reason', 'dispute_description', 'dispute_created_by',
                       'dispute_created_at', 'dispute_resolved_at', 'dispute_resolution', 'stripe_dispute_id')
        }),
        ('Ratings', {
            'fields': ('rating_enabled', 'buyer_rating', 'buyer_rating_comment',
                       'seller_rating', 'seller_rating_comment')
        }),
        ('Notes & dates', {
            'fields': ('notes', 'created_at', 'updated_at')
        }),
    )


@admin.register(StripeWebhookLog)
class StripeWebhookLogAdmin(admin.ModelAdmin):
    list_display = ('id', 'event_type', 'event_id', 'is_valid', 'processed', 'transaction', 'created_at')
    list_filter = ('is_valid', 'processed', 'event_type', 'created_at')
    search_fields = ('event_id', 'event_type')
    readonly_fields = ('event_id', 'event_type', 'payload', 'signature', 'is_valid', 'processed',
                       'error_message', 'transaction', 'created_at')

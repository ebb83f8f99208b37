from django.urls import re_path

from . import views, webhooks

app_name = 'payments'

urlpatterns = [
    re_path(r'^/create-intent/?$', views.create_payment_intent, name='create-intent'),
    re_path(r'^/create-transaction/?$', views.create_transaction, name='create-transaction'),
    re_path(r'^/confirm-delivery/(?P<transaction_id>[0-9]+)/?$', views.confirm_delivery, name='confirm-delivery'),
    re_path(r'^/mark-shipped/(?P<transaction_id>[0-9]+)/?$', views.mark_shipped, name='mark-shipped'),
    re_path(r'^/mark-delivered/(?P<transaction_id>[0-9]+)/?$', views.mark_delivered, name='mark-delivered'),
    re_path(r'^/dispute/(?P<transaction_id>[0-9]+)/?$', views.create_dispute, name='dispute'),
    re_path(r'^/resolve-dispute/(?P<transaction_id>[0-9]+)/?$', views.resolve_dispute, name='resolve-dispute'),
    re_path(r'^/methods/?$', views.payment_methods, name='methods'),
    re_path(r'^/calculate-fees/(?P<item_id>[0-9]+)/?$', views.calculate_fees_preview, name='calculate-fees'),
    re_path(r'^/revenue-summary/?$', views.revenue_summary, name='revenue-summary'),
    re_path(r'^/webhooks/stripe/?$', webhooks.stripe_webhook, name='stripe-webhook'),
]

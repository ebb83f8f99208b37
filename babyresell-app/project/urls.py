"""project URL Configuration

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/4.2/topics/http/urls/

API prefixes carry no trailing slash and every app pattern starts with one,
made optional, so `/api/themes` and `/api/themes/` reach the same view.
APPEND_SLASH is off: a redirect would drop POST and PUT bodies.
"""
from django.contrib import admin
from django.urls import path, include, re_path

from home import views as home_views

diagnostic_urls = [
    re_path(r'^$', home_views.api_root, name='api-root'),
    re_path(r'^api/health/?$', home_views.health, name='health'),
    re_path(r'^api/test', include(('home.urls', 'home'), namespace='home')),
]

urlpatterns = diagnostic_urls + [
    path('admin/', admin.site.urls),
    re_path(r'^api/payments', include('payments.urls', namespace='payments')),
    re_path(r'^api/transactions', include('payments.urls_transactions', namespace='transactions')),
    re_path(r'^api/settings', include('settings.urls', namespace='settings')),
    re_path(r'^api/themes', include('themes.urls', namespace='themes')),
]

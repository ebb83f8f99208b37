from django.urls import re_path

from . import views

app_name = 'settings'

urlpatterns = [
    re_path(r'^/?$', views.site_settings, name='site-settings'),
    re_path(r'^/test-email/?$', views.send_test_email, name='test-email'),
]

from django.urls import re_path
from . import views

app_name = 'home'

urlpatterns = [
    re_path(r'^/?$', views.api_test, name='api-test'),
    re_path(r'^/echo/?$', views.api_test_echo, name='api-test-echo'),
]

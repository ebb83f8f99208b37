from django.urls import re_path

from . import views

app_name = 'themes'

urlpatterns = [
    re_path(r'^/?$', views.theme_list, name='theme-list'),
    re_path(r'^/active/?$', views.active_theme, name='active'),
    re_path(r'^/activate-by-name/?$', views.activate_by_name, name='activate-by-name'),
    re_path(r'^/activate-seasonal/?$', views.activate_seasonal, name='activate-seasonal'),
    re_path(r'^/(?P<theme_id>[0-9]+)/?$', views.theme_detail, name='theme-detail'),
    re_path(r'^/(?P<theme_id>[0-9]+)/activate/?$', views.activate_theme, name='activate'),
]

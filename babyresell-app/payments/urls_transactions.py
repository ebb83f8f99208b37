from django.urls import re_path

from . import views_transactions

app_name = 'transactions'

urlpatterns = [
    re_path(r'^/?$', views_transactions.transaction_list, name='list'),
    re_path(r'^/stats/summary/?$', views_transactions.transaction_stats, name='stats'),
    re_path(r'^/(?P<transaction_id>[0-9]+)/?$', views_transactions.transaction_detail, name='detail'),
    re_path(r'^/(?P<transaction_id>[0-9]+)/rate/?$', views_transactions.rate_transaction, name='rate'),
]

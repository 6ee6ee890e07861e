from django.urls import path

from . import views

urlpatterns = [
    path("buy-bad/<str:sku>/", views.buy_bad, name="buy_bad"),
    path("buy-versioned/<str:sku>/", views.buy_versioned, name="buy_versioned"),
]

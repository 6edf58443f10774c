from django.urls import include, path
from rest_framework import routers

from .views import DraftOrderViewSet, OrderViewSet

app_name = "orders"

router = routers.DefaultRouter()
router.register(r"orders", OrderViewSet, basename="order")
router.register(r"drafts", DraftOrderViewSet, basename="draft")

urlpatterns = [
    path("", include(router.urls)),
]

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from receipts.views import (KitchenByReceiptAPIView, KitchenPendingAPIView,
                            ReceiptViewSet)

router = DefaultRouter()
router.register(r"receipt", ReceiptViewSet, basename="receipt")


urlpatterns = [
    path("kitchen/pending/", KitchenPendingAPIView.as_view(), name="kitchen-pending"),
    path("kitchen/by-receipt/", KitchenByReceiptAPIView.as_view(), name="kitchen-by-receipt"),
    path("", include(router.urls)),
]

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from discounts.views import ApplyDiscountAPIView, DiscountViewSet

router = DefaultRouter()
router.register(r"discount", DiscountViewSet, basename="discount")


urlpatterns = [
    path("apply/", ApplyDiscountAPIView.as_view(), name="apply-discount"),
    path("", include(router.urls)),
]

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from seating.views import TableViewSet

router = DefaultRouter()
router.register(r"table", TableViewSet, basename="table")


urlpatterns = [
    path("", include(router.urls)),
]

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from menu.views import ItemViewSet, SectionViewSet

router = DefaultRouter()
router.register(r"section", SectionViewSet, basename="section")
router.register(r"item", ItemViewSet, basename="item")


urlpatterns = [path("", include(router.urls))]

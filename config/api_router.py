from django.conf import settings
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from workhub.chat.api.views import ChatRoomViewSet
from workhub.users.api.views import UserViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("users", UserViewSet)
router.register("chat-rooms", ChatRoomViewSet, basename="chat-room")


app_name = "api"
urlpatterns = router.urls

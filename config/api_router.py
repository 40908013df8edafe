from django.urls import include
from django.urls import path

app_name = "api"
urlpatterns = [
    path("auth/", include("realtime_chat.users.api.urls")),
    path("messages/", include("realtime_chat.messaging.api.urls")),
]

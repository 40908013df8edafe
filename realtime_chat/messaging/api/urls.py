from django.urls import path

from .views import ConversationView
from .views import SendMessageView
from .views import SidebarUsersView

app_name = "messages"
urlpatterns = [
    path("users/", SidebarUsersView.as_view(), name="users"),
    path("send/<int:user_id>/", SendMessageView.as_view(), name="send"),
    path("<int:user_id>/", ConversationView.as_view(), name="conversation"),
]

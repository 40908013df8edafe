from django.urls import path

from . import views

app_name = "auth"
urlpatterns = [
    path("signup/", views.signup, name="signup"),
    path("login/", views.login, name="login"),
    path("logout/", views.logout, name="logout"),
    path("check/", views.check_auth, name="check"),
    path("update-profile/", views.update_profile, name="update-profile"),
]

from django.urls import path

from server.apps.drive import views

app_name = 'drive'

urlpatterns = [
    path('api/login', views.api_login, name='login'),
    path('api/logout', views.api_logout, name='logout'),
    path('api/me', views.me, name='me'),
    path('api/me/usage', views.my_usage, name='my_usage'),
    path('api/files', views.file_list, name='file_list'),
    path('api/files/<str:filename>', views.file_delete, name='file_delete'),
    path(
        'api/users/<int:user_id>/usage',
        views.user_usage,
        name='user_usage',
    ),
    path('download/<str:filename>', views.download, name='download'),
    path('upload', views.upload, name='upload'),
    path('health', views.health, name='health'),
]

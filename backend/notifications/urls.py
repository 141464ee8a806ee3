from django.urls import path
from . import views

app_name = 'notifications'

urlpatterns = [
    path('', views.list_notifications, name='list'),
    path('<int:notification_id>/read/', views.mark_notification_read, name='mark-read'),
    path('read-all/', views.mark_all_notifications_read, name='mark-all-read'),
]

from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Authentication endpoints (register, login, refresh, me)
    path('api/auth/', include('accounts.urls')),

    # Driver APIs (profile, status, location, vehicle, open rides, history)
    path('api/driver/', include('drivers.urls')),

    # Passenger APIs (profile, trip history)
    path('api/passengers/', include('passengers.urls')),

    # Rides endpoints (booking, lifecycle actions, status updates, chat)
    path('api/rides/', include('rides.urls')),

    # In-app notification inbox
    path('api/notifications/', include('notifications.urls')),
]

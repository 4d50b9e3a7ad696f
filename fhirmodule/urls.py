from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('fhir/', include('api.urls')),
    path('api-auth/', include('rest_framework.urls')),

    # /metrics (django-prometheus), à protéger au niveau ingress
    path('', include('django_prometheus.urls')),

    path('admin/', admin.site.urls),
]

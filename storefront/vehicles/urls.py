from django.urls import path
from .views import makes_models

urlpatterns = [
    path('vehicles/makes-models/', makes_models, name='vehicle-makes-models'),
]

"""
URL configuration of the anchor app. Include it in the project's root URLconf:

    path("", include("anchor.urls"))
"""
from django.urls import include, re_path


urlpatterns = [re_path(r"^auth/?", include("anchor.sep10.urls"))]

from django.urls import path, include

urlpatterns = [
    path('api/git/', include('repo_browser.urls', namespace='repo_browser')),
]

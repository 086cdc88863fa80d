from django.urls import path

from . import views

app_name = 'repo_browser'

urlpatterns = [
    path("browse/", views.browse_view, name="browse_root"),
    path("browse/<path:path>/", views.browse_view, name="browse"),
    path("repo/<path:path>/", views.repo_overview, name="repo_overview"),
    path("log/<path:path>/", views.commit_list, name="commit_list"),
    path(
        "commit/<str:commit_sha>/<path:path>/",
        views.commit_detail,
        name="commit_detail",
    ),
    path("tree/<path:path>/", views.tree_view, name="tree_view"),
    path("blob/<path:path>/", views.blob_view, name="blob_view"),
    path("raw/<path:path>/", views.raw_blob, name="raw_blob"),
    path("zip/<path:path>/", views.zip_archive, name="zip_archive"),
]

import io
import logging
from dataclasses import asdict
from functools import wraps

from django.apps import apps
from django.http import FileResponse, Http404, HttpRequest, JsonResponse
from django.urls import reverse
from django.utils.http import urlencode
from django.views.decorators.http import require_GET

from . import engine
from .errors import InvalidRequestError, NoBranchesError, RepositoryAccessError, RepositoryNotFoundError
from .helpers import is_readme
from .location import browse, resolve_location

logger = logging.getLogger(__name__)

DEFAULT_TAKE = 50


def _roots():
    return apps.get_app_config("repo_browser").server_config.repository_roots


def _location(path):
    return resolve_location(path, _roots())


def _int_param(request, name, default):
    value = request.GET.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidRequestError(f"'{name}' must be an integer")


def git_view(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except InvalidRequestError as exc:
            return JsonResponse({"error": str(exc)}, status=400)
        except (RepositoryNotFoundError, NoBranchesError) as exc:
            raise Http404(str(exc))
        except RepositoryAccessError as exc:
            logger.error("Repository access failed for %s: %s", request.path, exc)
            return JsonResponse({"error": str(exc)}, status=500)
    return require_GET(wrapper)


@git_view
def browse_view(request: HttpRequest, path: str = "") -> JsonResponse:
    entries = browse(path, _roots())
    return JsonResponse({"path": path, "directories": [asdict(e) for e in entries]})


@git_view
def repo_overview(request: HttpRequest, path: str) -> JsonResponse:
    location = _location(path)
    branch = request.GET.get("branch", "")
    context = {
        "repository": location.repository_name,
        "branches": engine.list_branches(location),
        "readme": "",
    }
    if context["branches"]:
        context["readme"] = engine.find_file(location, branch, is_readme)
    return JsonResponse(context)


@git_view
def commit_list(request: HttpRequest, path: str) -> JsonResponse:
    location = _location(path)
    branch = request.GET.get("branch", "")
    skip = _int_param(request, "skip", 0)
    take = _int_param(request, "take", DEFAULT_TAKE)
    commits = engine.get_history(location, branch, skip=skip, take=take)
    return JsonResponse({
        "repository": location.repository_name,
        "branch": branch,
        "skip": skip,
        "take": take,
        "commits": [asdict(c) for c in commits],
    })


@git_view
def commit_detail(request, commit_sha, path):
    location = _location(path)
    detail = engine.get_commit(location, commit_sha)
    if detail is None:
        raise Http404(f"Commit '{commit_sha}' not found")
    return JsonResponse({"repository": location.repository_name, **asdict(detail)})


@git_view
def tree_view(request, path):
    location = _location(path)
    branch = request.GET.get("branch", "")
    tree = engine.get_tree(location, branch)
    return JsonResponse({
        "repository": location.repository_name,
        "branch": branch,
        "path": location.sub_path,
        "entries": [asdict(e) for e in tree],
    })


@git_view
def blob_view(request, path):
    location = _location(path)
    branch = request.GET.get("branch", "")
    blob = engine.get_blob(location, branch)
    if blob is None:
        raise Http404("File not found")

    raw_url = reverse("repo_browser:raw_blob", kwargs={"path": path})
    blob.raw_url = f"{raw_url}?{urlencode({'branch': branch})}" if branch else raw_url
    return JsonResponse({
        "repository": location.repository_name,
        "branch": branch,
        "path": location.sub_path,
        "file_name": blob.file_name,
        "size": blob.size,
        "content": blob.content,
        "raw_url": blob.raw_url,
    })


@git_view
def raw_blob(request, path):
    blob = engine.get_blob(_location(path), request.GET.get("branch", ""))
    if blob is None:
        raise Http404("File not found")
    return FileResponse(
        io.BytesIO(blob.raw_content), as_attachment=True, filename=blob.file_name, content_type="application/octet-stream"
    )


@git_view
def zip_archive(request, path):
    archive = engine.export_archive(_location(path), request.GET.get("branch", ""))
    return FileResponse(io.BytesIO(archive.data), as_attachment=True, filename=archive.name, content_type="application/zip")

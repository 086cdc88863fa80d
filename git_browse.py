import os
import sys
import logging
import argparse
from dataclasses import asdict

import requests

from repo_browser import engine
from repo_browser.config import GitServerConfig
from repo_browser.errors import GitServerError
from repo_browser.location import browse, resolve_location
from repo_browser.helpers import is_readme

REMOTE_URL = "http://localhost:8000/api/git"
ROOTS_ENV = "GIT_SERVER_ROOTS"

logger = logging.getLogger("git_browse")


def print_commits(commits):
    for c in commits:
        print(f"{c['short_hash']} {c['timestamp']} {c['author_name']} <{c['author_email']}>")
        print(f"    {c['message'].splitlines()[0] if c['message'] else ''}")


def print_tree(entries):
    for e in entries:
        marker = "/" if e["kind"] == "directory" else ""
        print(f"{e['path']}{marker}")


def write_archive(name, data, output):
    target = output or name
    if os.path.isdir(target):
        target = os.path.join(target, name)
    with open(target, 'wb') as f:
        f.write(data)
    print(f"Wrote {target} ({len(data)} bytes)")


def run_local(args, config):
    if args.command == 'browse':
        for d in browse(args.path or "", config.repository_roots):
            print(f"{d.path}{' (repository)' if d.type == 'repository' else '/'}")
        return

    location = resolve_location(args.path, config.repository_roots)
    if args.command == 'branches':
        for name in engine.list_branches(location):
            print(name)
    elif args.command == 'log':
        commits = engine.get_history(location, args.branch, skip=args.skip, take=args.take)
        print_commits([asdict(c) for c in commits])
    elif args.command == 'commit':
        detail = engine.get_commit(location, args.hash)
        if detail is None:
            raise GitServerError(f"Commit '{args.hash}' not found")
        print_commits([asdict(detail.commit)])
        for change in detail.changes:
            print(f"{change.change_type:8} {change.path}")
    elif args.command == 'tree':
        tree = engine.get_tree(location, args.branch)
        print_tree([{"path": e.path, "kind": e.kind.value} for e in tree])
    elif args.command == 'show':
        blob = engine.get_blob(location, args.branch)
        if blob is None:
            raise GitServerError(f"File '{location.sub_path}' not found")
        if blob.content or not blob.raw_content:
            print(blob.content)
        else:
            sys.stdout.buffer.write(blob.raw_content)
    elif args.command == 'readme':
        print(engine.find_file(location, args.branch, is_readme))
    elif args.command == 'archive':
        archive = engine.export_archive(location, args.branch)
        write_archive(archive.name, archive.data, args.output)


def _get(remote, endpoint, path, **params):
    url = f"{remote.rstrip('/')}/{endpoint}/{path.strip('/')}/" if path else f"{remote.rstrip('/')}/{endpoint}/"
    params = {k: v for k, v in params.items() if v not in (None, "")}
    resp = requests.get(url, params=params, timeout=60)
    if resp.status_code != 200:
        try:
            message = resp.json().get("error", resp.reason)
        except ValueError:
            message = resp.reason
        raise GitServerError(f"{resp.status_code} {message}")
    return resp


def run_remote(args):
    remote = args.remote_url or REMOTE_URL
    if args.command == 'browse':
        for d in _get(remote, 'browse', args.path).json()["directories"]:
            print(f"{d['path']}{' (repository)' if d['type'] == 'repository' else '/'}")
    elif args.command == 'branches':
        for name in _get(remote, 'repo', args.path).json()["branches"]:
            print(name)
    elif args.command == 'readme':
        print(_get(remote, 'repo', args.path, branch=args.branch).json()["readme"])
    elif args.command == 'log':
        data = _get(remote, 'log', args.path, branch=args.branch, skip=args.skip, take=args.take).json()
        print_commits(data["commits"])
    elif args.command == 'commit':
        data = _get(remote, f'commit/{args.hash}', args.path).json()
        print_commits([data["commit"]])
        for change in data["changes"]:
            print(f"{change['change_type']:8} {change['path']}")
    elif args.command == 'tree':
        print_tree(_get(remote, 'tree', args.path, branch=args.branch).json()["entries"])
    elif args.command == 'show':
        sys.stdout.buffer.write(_get(remote, 'raw', args.path, branch=args.branch).content)
    elif args.command == 'archive':
        resp = _get(remote, 'zip', args.path, branch=args.branch)
        name = resp.headers.get("Content-Disposition", "").partition('filename="')[2].rstrip('"')
        write_archive(name or "archive.zip", resp.content, args.output)


def build_parser():
    parser = argparse.ArgumentParser(description="Browse git repositories read-only")
    parser.add_argument('command', choices=['browse', 'branches', 'log', 'commit', 'tree', 'show', 'readme', 'archive'], help='git_browse commands')
    parser.add_argument('-p', '--path', type=str, default="", help='Repository path, optionally followed by a path inside the tree')
    parser.add_argument('-b', '--branch', type=str, default="", help='Branch name (defaults to master)')
    parser.add_argument('-R', '--root', action='append', default=[], help='Repository root directory, may be repeated')
    parser.add_argument('--hash', type=str, help='Commit hash for the commit command')
    parser.add_argument('--skip', type=int, default=0, help='Commits to skip for the log command')
    parser.add_argument('--take', type=int, default=None, help='Maximum commits for the log command')
    parser.add_argument('-o', '--output', type=str, help='Output file or directory for the archive command')
    parser.add_argument('--remote', action='store_true', help='Query a running server instead of local roots')
    parser.add_argument('--remote-url', type=str, help=f'Server API url, implies --remote (default {REMOTE_URL})')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command != 'browse' and not args.path:
        parser.error(f'{args.command} requires a -p path')
    if args.command == 'commit' and not args.hash:
        parser.error('the commit command requires --hash')

    try:
        if args.remote or args.remote_url:
            run_remote(args)
        else:
            roots = args.root or [r for r in os.environ.get(ROOTS_ENV, "").split(os.pathsep) if r]
            if not roots:
                parser.error(f'give at least one -R root or set {ROOTS_ENV}')
            run_local(args, GitServerConfig.from_roots(roots))
    except (GitServerError, requests.RequestException) as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())

import io
import logging
import zipfile
from datetime import datetime

from .helpers import DirectoryNode, FileNode, iter_children, read_blob
from .models import ZipArchive

logger = logging.getLogger(__name__)

COMPRESSION_LEVEL = 3


def archive_name(repository_name: str, branch_name: str) -> str:
    return f"{repository_name}-{branch_name}.zip"


def _compress_tree(repo, directory: DirectoryNode, output: zipfile.ZipFile, date_time) -> int:
    count = 0
    for child in iter_children(repo, directory):
        if isinstance(child, DirectoryNode):
            count += _compress_tree(repo, child, output, date_time)
        elif isinstance(child, FileNode):
            data = read_blob(repo, child)
            entry = zipfile.ZipInfo(f"{directory.path}/{child.name}".lstrip("/"), date_time=date_time)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = (child.mode & 0xFFFF) << 16
            entry.file_size = len(data)
            output.writestr(entry, data, compress_type=zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL)
            count += 1
    return count


def build_archive(repo, root: DirectoryNode, name: str) -> ZipArchive:
    # one timestamp for every entry, tree entries carry no mtime
    date_time = datetime.now().timetuple()[:6]

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL) as output:
        count = _compress_tree(repo, root, output, date_time)

    data = buffer.getvalue()
    logger.info("Built archive %s with %d entries (%d bytes)", name, count, len(data))
    return ZipArchive(name=name, data=data)

# storage.py
# File buckets on local disk (avatars, product media, page backgrounds).

import os
import datetime
import uuid

from flask import Blueprint, current_app, send_from_directory, abort
from werkzeug.utils import secure_filename

import config
from errors import ApiError

storage_bp = Blueprint('storage', __name__)


def bucket_root(bucket):
    if bucket not in config.STORAGE_BUCKETS:
        raise ApiError(f"Unknown bucket '{bucket}'", 404)
    root = os.path.abspath(os.path.join(current_app.config["UPLOAD_FOLDER"], bucket))
    os.makedirs(root, exist_ok=True)
    return root


def _clean_path(path):
    parts = [secure_filename(part) for part in path.replace("\\", "/").split("/") if part]
    parts = [part for part in parts if part]
    if not parts:
        raise ApiError("Invalid file name", 400)
    return "/".join(parts)


def file_extension(name):
    if not name or "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def file_size(file_storage):
    stream = file_storage.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def public_url(bucket, path):
    return f"/storage/{bucket}/{path}"


def save_upload(bucket, path, file_storage):
    """Writes an uploaded file into a bucket and returns its bucket-relative path."""
    relative = _clean_path(path)
    target = os.path.join(bucket_root(bucket), *relative.split("/"))
    if os.path.exists(target):
        raise ApiError("File already exists", 409)
    os.makedirs(os.path.dirname(target), exist_ok=True)
    file_storage.save(target)
    current_app.logger.info("Stored %s/%s", bucket, relative)
    return relative


def list_files(bucket, prefix=""):
    root = bucket_root(bucket)
    folder = os.path.join(root, _clean_path(prefix)) if prefix else root
    if not os.path.isdir(folder):
        return []
    files = []
    for name in sorted(os.listdir(folder)):
        full = os.path.join(folder, name)
        if not os.path.isfile(full):
            continue
        relative = os.path.relpath(full, root).replace(os.sep, "/")
        created = datetime.datetime.fromtimestamp(os.path.getmtime(full), datetime.timezone.utc)
        files.append({"name": name, "path": relative, "created_at": created.isoformat()})
    return files


def remove_files(bucket, paths):
    root = bucket_root(bucket)
    removed = 0
    for path in paths:
        target = os.path.join(root, *_clean_path(path).split("/"))
        if os.path.isfile(target):
            os.remove(target)
            removed += 1
    return removed


def unique_name(ext):
    """Timestamped file name, e.g. 1718000000123-1a2b3c4d.png."""
    millis = int(datetime.datetime.now(datetime.timezone.utc).timestamp() * 1000)
    return f"{millis}-{uuid.uuid4().hex[:8]}.{ext}"


@storage_bp.route('/storage/<bucket>/<path:path>', methods=['GET'])
def serve_file(bucket, path):
    if bucket not in config.STORAGE_BUCKETS:
        abort(404)
    return send_from_directory(bucket_root(bucket), path)

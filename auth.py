# auth.py
# Accounts: signup/login, profile and avatar, admin-only user management.

import sqlite3
from functools import wraps

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token, jwt_required, get_jwt, get_jwt_identity, verify_jwt_in_request,
)

import config
import storage
from database import get_db, utcnow, update_row
from errors import ApiError, require_json, is_valid_email, parse_bool
from extensions import bcrypt

auth_bp = Blueprint('auth', __name__, url_prefix='/api')

PUBLIC_USER_FIELDS = (
    "id", "email", "is_admin", "full_name", "phone", "address", "city", "state",
    "zip_code", "country", "avatar_url", "created_at", "updated_at",
)
PROFILE_FIELDS = ("full_name", "phone", "address", "city", "state", "zip_code", "country")


# --- Admin Required Decorator ---
def admin_required():
    """Custom decorator to protect routes that require admin privileges."""
    def wrapper(fn):
        @wraps(fn)
        def decorator(*args, **kwargs):
            verify_jwt_in_request()
            claims = get_jwt()
            if claims.get("is_admin"):
                return fn(*args, **kwargs)
            current_app.logger.warning("Non-admin user %s denied %s %s",
                                       get_jwt_identity(), request.method, request.path)
            return jsonify({"error": "Administration rights required"}), 403
        return decorator
    return wrapper


def current_user_id():
    return int(get_jwt_identity())


def current_is_admin():
    return bool(get_jwt().get("is_admin"))


def is_admin_user(user_row):
    return bool(user_row["is_admin"]) or user_row["email"].lower() in config.ADMIN_EMAILS


def public_user(user_row):
    user = {key: user_row[key] for key in PUBLIC_USER_FIELDS}
    user["is_admin"] = is_admin_user(user_row)
    return user


def get_user(user_id):
    row = get_db().execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        raise ApiError("User not found", 404)
    return row


def issue_token(user_row):
    additional_claims = {"is_admin": is_admin_user(user_row)}
    return create_access_token(identity=str(user_row['id']), additional_claims=additional_claims)


def create_user(email, password, full_name=None, is_admin=False):
    """Inserts a user and returns its row. Raises ApiError on bad input or duplicates."""
    if not isinstance(email, str) or not isinstance(password, str):
        raise ApiError("Email and password must be text")
    email = email.strip().lower()
    if not email or not password:
        raise ApiError("Email and password are required")
    if not is_valid_email(email):
        raise ApiError("Invalid email address")
    if len(password) < config.PASSWORD_MIN_LENGTH:
        raise ApiError(f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters")

    is_admin = is_admin or email in config.ADMIN_EMAILS
    password_hash = bcrypt.generate_password_hash(password).decode('utf-8')
    now = utcnow()
    conn = get_db()
    try:
        cursor = conn.execute(
            "INSERT INTO users (email, password_hash, is_admin, full_name, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (email, password_hash, 1 if is_admin else 0, full_name, now, now)
        )
        conn.commit()
    except sqlite3.IntegrityError:
        raise ApiError("Email already registered", 409)
    current_app.logger.info("Created user %s (admin=%s)", email, is_admin)
    return get_user(cursor.lastrowid)


# --- Auth Endpoints ---
@auth_bp.route('/auth/signup', methods=['POST'])
def signup():
    data = require_json()
    user_row = create_user(data.get('email'), data.get('password'), data.get('full_name'))
    return jsonify({"user": public_user(user_row), "access_token": issue_token(user_row)}), 201


@auth_bp.route('/auth/login', methods=['POST'])
def login_user():
    data = require_json()
    email = data.get('email')
    password = data.get('password')
    if not isinstance(email, str) or not isinstance(password, str):
        return jsonify({"error": "Email and password are required"}), 400
    email = email.strip().lower()
    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    user_row = get_db().execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
    if user_row and bcrypt.check_password_hash(user_row['password_hash'], password):
        return jsonify(access_token=issue_token(user_row), user=public_user(user_row)), 200
    current_app.logger.warning("Failed login for %s", email)
    return jsonify({"error": "Invalid email or password"}), 401


@auth_bp.route('/auth/me', methods=['GET'])
@jwt_required()
def get_profile():
    return jsonify(public_user(get_user(current_user_id()))), 200


@auth_bp.route('/auth/me', methods=['PUT'])
@jwt_required()
def update_profile():
    data = require_json()
    updates = {key: data[key] for key in PROFILE_FIELDS if key in data}
    if not updates:
        return jsonify({"error": "No update data provided."}), 400

    user_id = current_user_id()
    get_user(user_id)
    updates["updated_at"] = utcnow()
    conn = get_db()
    update_row(conn, "users", user_id, updates)
    conn.commit()
    return jsonify(public_user(get_user(user_id))), 200


@auth_bp.route('/auth/password', methods=['PUT'])
@jwt_required()
def change_password():
    data = require_json()
    current_password = data.get('current_password')
    new_password = data.get('new_password')
    if not isinstance(current_password, str) or not isinstance(new_password, str) \
            or not current_password or not new_password:
        return jsonify({"error": "Current and new password are required"}), 400

    user_row = get_user(current_user_id())
    if not bcrypt.check_password_hash(user_row['password_hash'], current_password):
        return jsonify({"error": "Current password is incorrect"}), 401
    if len(new_password) < config.PASSWORD_MIN_LENGTH:
        return jsonify({"error": f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters"}), 400

    password_hash = bcrypt.generate_password_hash(new_password).decode('utf-8')
    conn = get_db()
    conn.execute("UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                 (password_hash, utcnow(), user_row['id']))
    conn.commit()
    return jsonify({"message": "Password updated"}), 200


# --- Avatar ---
def _clear_avatar_files(user_id):
    files = storage.list_files("avatars", str(user_id))
    return storage.remove_files("avatars", [f["path"] for f in files])


@auth_bp.route('/auth/avatar', methods=['POST'])
@jwt_required()
def upload_avatar():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({"error": "No file provided"}), 400

    ext = storage.file_extension(upload.filename)
    if ext not in config.AVATAR_EXTENSIONS:
        return jsonify({"error": "Invalid file type. Please upload a jpg, jpeg, png, or gif file."}), 400
    if storage.file_size(upload) > config.AVATAR_MAX_BYTES:
        return jsonify({"error": "File size too large. Please upload a file smaller than 2MB."}), 400

    user_id = current_user_id()
    _clear_avatar_files(user_id)
    path = storage.save_upload("avatars", f"{user_id}/{storage.unique_name(ext)}", upload)
    avatar_url = storage.public_url("avatars", path)

    conn = get_db()
    conn.execute("UPDATE users SET avatar_url = ?, updated_at = ? WHERE id = ?", (avatar_url, utcnow(), user_id))
    conn.commit()
    return jsonify({"avatar_url": avatar_url}), 200


@auth_bp.route('/auth/avatar', methods=['DELETE'])
@jwt_required()
def delete_avatar():
    user_id = current_user_id()
    removed = _clear_avatar_files(user_id)
    conn = get_db()
    conn.execute("UPDATE users SET avatar_url = NULL, updated_at = ? WHERE id = ?", (utcnow(), user_id))
    conn.commit()
    return jsonify({"message": "Avatar removed", "removed": removed}), 200


# --- User Management (Admin only) ---
@auth_bp.route('/users', methods=['POST'])
@admin_required()
def create_user_by_admin():
    data = require_json()
    is_admin = parse_bool(data.get('is_admin', False))
    user_row = create_user(data.get('email'), data.get('password'), data.get('full_name'), is_admin)
    user = public_user(user_row)
    user["message"] = f"User '{user['email']}' created"
    return jsonify(user), 201


@auth_bp.route('/users', methods=['GET'])
@admin_required()
def get_all_users():
    rows = get_db().execute('SELECT * FROM users ORDER BY id').fetchall()
    return jsonify([public_user(row) for row in rows]), 200

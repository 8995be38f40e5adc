# site_settings.py
# Page banner/background settings, the background media library and the
# editable website config (hero, about, theme, contact, footer).

import copy
import json
import sqlite3

from flask import Blueprint, request, jsonify, current_app

import config
import storage
from auth import admin_required
from database import get_db, utcnow, insert_row, update_row
from errors import ApiError, require_json

site_bp = Blueprint('site', __name__, url_prefix='/api')

MEDIA_FIELDS = ("banner_image", "background_video", "about_image1", "about_image2", "about_image3", "about_image4")

DEFAULT_CONFIG = {
    "hero": {
        "title": "Premium Arowana Fish for True Enthusiasts",
        "subtitle": "Discover our exclusive collection of rare and exotic Arowana species, "
                    "handpicked for the discerning collector.",
        "buttonText": "Explore Collection",
        "backgroundImage": "https://images.unsplash.com/photo-1520301255226-bf5f144451c1",
    },
    "about": {
        "title": "About LifestyleAqua",
        "description": "LifestyleAqua is a premier destination for exotic fish enthusiasts, specializing in "
                       "rare Arowana species. With decades of expertise, we source the finest specimens from "
                       "around the world, ensuring authenticity, health, and exceptional quality.",
        "imageUrl": "https://images.unsplash.com/photo-1571438188835-b7f91387e7d3",
    },
    "theme": {
        "primaryColor": "#058c8c",
        "secondaryColor": "#1a4645",
        "textColor": "#333333",
        "backgroundColor": "#ffffff",
    },
    "contact": {
        "email": "contact@lifestyleaqua.com",
        "phone": "+1 (555) 123-4567",
        "address": "123 Aquarium Avenue, Ocean City, CA 90210",
    },
    "footer": {
        "copyright": "© 2023 LifestyleAqua. All rights reserved.",
        "socialLinks": {
            "facebook": "https://facebook.com/lifestyleaqua",
            "twitter": "https://twitter.com/lifestyleaqua",
            "instagram": "https://instagram.com/lifestyleaqua",
        },
    },
}


# --- Page Settings ---
def _page_setting(where, params):
    row = get_db().execute(f"SELECT * FROM page_settings WHERE {where}", params).fetchone()
    if row is None:
        raise ApiError("Page settings not found", 404)
    return dict(row)


@site_bp.route('/settings/pages/<page>/<section>', methods=['GET'])
def get_page_setting(page, section):
    return jsonify(_page_setting("page = ? AND section = ?", (page, section))), 200


@site_bp.route('/settings/pages', methods=['GET'])
@admin_required()
def get_page_settings():
    rows = get_db().execute("SELECT * FROM page_settings ORDER BY page, section").fetchall()
    return jsonify([dict(row) for row in rows]), 200


@site_bp.route('/settings/pages', methods=['POST'])
@admin_required()
def create_page_setting():
    data = require_json()
    page = (data.get('page') or "").strip()
    section = (data.get('section') or "").strip()
    if not page or not section:
        return jsonify({"error": "Page and section are required"}), 400

    values = {key: data[key] for key in MEDIA_FIELDS if key in data}
    values.update({"page": page, "section": section, "updated_at": utcnow()})
    conn = get_db()
    try:
        setting_id = insert_row(conn, "page_settings", values)
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        return jsonify({"error": f"Settings for {page}/{section} already exist"}), 409
    current_app.logger.info("Created page settings %s/%s", page, section)
    return jsonify(_page_setting("id = ?", (setting_id,))), 201


@site_bp.route('/settings/pages/<int:setting_id>', methods=['PUT'])
@admin_required()
def update_page_setting(setting_id):
    _page_setting("id = ?", (setting_id,))
    data = require_json()
    values = {key: data[key] for key in MEDIA_FIELDS if key in data}
    if not values:
        return jsonify({"error": f"Only these fields can be updated: {', '.join(MEDIA_FIELDS)}"}), 400
    values["updated_at"] = utcnow()
    conn = get_db()
    update_row(conn, "page_settings", setting_id, values)
    conn.commit()
    return jsonify(_page_setting("id = ?", (setting_id,))), 200


# --- Media Library ---
def media_type(name):
    ext = storage.file_extension(name)
    if ext in config.IMAGE_EXTENSIONS:
        return "image"
    if ext in config.VIDEO_EXTENSIONS:
        return "video"
    return None


@site_bp.route('/settings/media', methods=['GET'])
@admin_required()
def list_media():
    media = []
    for entry in storage.list_files("backgrounds"):
        kind = media_type(entry["name"])
        if kind is None:
            continue
        media.append({
            "name": entry["name"],
            "url": storage.public_url("backgrounds", entry["path"]),
            "created_at": entry["created_at"],
            "type": kind,
        })
    media.sort(key=lambda item: item["created_at"], reverse=True)
    return jsonify(media), 200


@site_bp.route('/settings/media', methods=['POST'])
@admin_required()
def upload_media():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({"error": "No file uploaded"}), 400
    ext = storage.file_extension(upload.filename)
    if media_type(upload.filename) is None:
        return jsonify({"error": "Only image or video files are allowed"}), 400

    path = storage.save_upload("backgrounds", storage.unique_name(ext), upload)
    return jsonify({
        "name": path,
        "url": storage.public_url("backgrounds", path),
        "type": media_type(path),
    }), 201


@site_bp.route('/settings/media/<name>', methods=['DELETE'])
@admin_required()
def delete_media(name):
    if storage.remove_files("backgrounds", [name]) == 0:
        return jsonify({"error": "File not found"}), 404
    current_app.logger.info("Deleted background media %s", name)
    return jsonify({"message": "File deleted"}), 200


# --- Website Config ---
def value_type(name, value):
    if isinstance(value, dict):
        return "json"
    if name.endswith("Color"):
        return "color"
    if name.endswith("Image") or name.endswith("Url"):
        return "image"
    return "text"


def _decode(row):
    if row["type"] == "json":
        try:
            return json.loads(row["value"])
        except ValueError:
            current_app.logger.warning("Ignoring malformed JSON for %s.%s", row["section"], row["name"])
            return None
    return row["value"]


def deep_merge(base, overrides):
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_site_config():
    stored = {}
    for row in get_db().execute("SELECT * FROM website_config").fetchall():
        value = _decode(row)
        if value is not None:
            stored.setdefault(row["section"], {})[row["name"]] = value
    return deep_merge(DEFAULT_CONFIG, stored)


@site_bp.route('/site-config', methods=['GET'])
def get_site_config():
    return jsonify(load_site_config()), 200


@site_bp.route('/site-config', methods=['PUT'])
@admin_required()
def update_site_config():
    data = require_json()
    if not data:
        return jsonify({"error": "No update data provided."}), 400

    rows = []
    for section, values in data.items():
        if section not in DEFAULT_CONFIG:
            return jsonify({"error": f"Unknown config section '{section}'"}), 400
        if not isinstance(values, dict):
            return jsonify({"error": f"Section '{section}' must be an object"}), 400
        for name, value in values.items():
            if name not in DEFAULT_CONFIG[section]:
                return jsonify({"error": f"Unknown setting '{section}.{name}'"}), 400
            kind = value_type(name, value)
            stored = json.dumps(value) if kind == "json" else ("" if value is None else str(value))
            rows.append((section, name, stored, kind, utcnow()))

    conn = get_db()
    with conn:
        conn.executemany('''
            INSERT INTO website_config (section, name, value, type, last_updated) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (section, name) DO UPDATE SET
                value = excluded.value, type = excluded.type, last_updated = excluded.last_updated
        ''', rows)
    current_app.logger.info("Website config updated: %s", ", ".join(sorted(data)))
    return jsonify(load_site_config()), 200

# content.py
# Storefront content: offers, testimonials, vlogs, contact messages,
# arowana certificates and static pages. Reads are public, writes are admin-only.

import re
import sqlite3
from urllib.parse import urlparse, parse_qs

from flask import Blueprint, request, jsonify, current_app

import config
from auth import admin_required
from database import get_db, utcnow, today, row_to_dict, insert_row, update_row
from errors import ApiError, require_json, is_valid_email, parse_bool

content_bp = Blueprint('content', __name__, url_prefix='/api')

OFFER_FIELDS = ("title", "description", "deadline", "background_image", "category",
                "target_url", "product_name", "active")
TESTIMONIAL_FIELDS = ("name", "role", "company", "content", "rating", "avatar_url", "is_featured")
VLOG_FIELDS = ("title", "description", "youtube_url", "thumbnail_url", "duration",
               "views_count", "active", "featured")
CERTIFICATE_FIELDS = ("certificate_id", "type", "issue_date", "breeder", "location")
PAGE_FIELDS = ("title", "slug", "content", "status")

BOOL_FIELDS = {
    "offers": ("active",),
    "testimonials": ("is_featured",),
    "vlogs": ("active", "featured"),
    "messages": ("read", "archived"),
}


def _pick(data, fields):
    return {key: data[key] for key in fields if key in data}


def _fetch(table, row_id, label):
    row = get_db().execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,)).fetchone()
    if row is None:
        raise ApiError(f"{label} not found", 404)
    return row_to_dict(row, BOOL_FIELDS.get(table, ()))


def _list(table, sql, params=()):
    rows = get_db().execute(sql, params).fetchall()
    return [row_to_dict(row, BOOL_FIELDS.get(table, ())) for row in rows]


def _delete(table, row_id, label):
    conn = get_db()
    cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
    conn.commit()
    if cursor.rowcount == 0:
        raise ApiError(f"{label} not found", 404)
    current_app.logger.info("Deleted %s %s", table, row_id)
    return jsonify({"message": f"{label} deleted"}), 200


def _required(values, *fields):
    missing = [field for field in fields if not str(values.get(field) or "").strip()]
    if missing:
        raise ApiError(f"Missing required fields: {', '.join(missing)}")


def _rating(value):
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ApiError("Rating must be a whole number between 1 and 5")
    return value


# --- Offers ---
def _clean_offer(values):
    if "category" in values and values["category"] not in config.OFFER_CATEGORIES:
        raise ApiError(f"Invalid category. Must be one of: {', '.join(config.OFFER_CATEGORIES)}")
    if "active" in values:
        values["active"] = 1 if parse_bool(values["active"]) else 0
    return values


@content_bp.route('/offers', methods=['GET'])
def get_active_offers():
    return jsonify(_list("offers", "SELECT * FROM offers WHERE active = 1 ORDER BY created_at DESC, id DESC")), 200


@content_bp.route('/admin/offers', methods=['GET'])
@admin_required()
def get_all_offers():
    return jsonify(_list("offers", "SELECT * FROM offers ORDER BY created_at DESC, id DESC")), 200


@content_bp.route('/offers', methods=['POST'])
@admin_required()
def create_offer():
    values = _clean_offer(_pick(require_json(), OFFER_FIELDS))
    _required(values, "title")
    values.setdefault("category", "all")
    values["target_url"] = values.get("target_url") or "/products"
    values["created_at"] = values["updated_at"] = utcnow()
    conn = get_db()
    offer_id = insert_row(conn, "offers", values)
    conn.commit()
    current_app.logger.info("Created offer %s '%s'", offer_id, values["title"])
    return jsonify(_fetch("offers", offer_id, "Offer")), 201


@content_bp.route('/offers/<int:offer_id>', methods=['PUT'])
@admin_required()
def update_offer(offer_id):
    _fetch("offers", offer_id, "Offer")
    values = _clean_offer(_pick(require_json(), OFFER_FIELDS))
    if not values:
        return jsonify({"error": "No update data provided."}), 400
    if "title" in values:
        _required(values, "title")
    values["updated_at"] = utcnow()
    conn = get_db()
    update_row(conn, "offers", offer_id, values)
    conn.commit()
    return jsonify(_fetch("offers", offer_id, "Offer")), 200


@content_bp.route('/offers/<int:offer_id>/active', methods=['PATCH'])
@admin_required()
def toggle_offer(offer_id):
    offer = _fetch("offers", offer_id, "Offer")
    conn = get_db()
    update_row(conn, "offers", offer_id, {"active": 0 if offer["active"] else 1, "updated_at": utcnow()})
    conn.commit()
    return jsonify(_fetch("offers", offer_id, "Offer")), 200


@content_bp.route('/offers/<int:offer_id>', methods=['DELETE'])
@admin_required()
def delete_offer(offer_id):
    return _delete("offers", offer_id, "Offer")


# --- Testimonials ---
def _clean_testimonial(values):
    if "rating" in values:
        values["rating"] = _rating(values["rating"])
    if "is_featured" in values:
        values["is_featured"] = 1 if parse_bool(values["is_featured"]) else 0
    return values


@content_bp.route('/testimonials', methods=['GET'])
def get_testimonials():
    where = "WHERE is_featured = 1" if parse_bool(request.args.get('featured')) else ""
    return jsonify(_list(
        "testimonials",
        f"SELECT * FROM testimonials {where} ORDER BY is_featured DESC, created_at DESC, id DESC")), 200


@content_bp.route('/testimonials', methods=['POST'])
@admin_required()
def create_testimonial():
    values = _pick(require_json(), TESTIMONIAL_FIELDS)
    _required(values, "name", "content")
    if "rating" not in values:
        raise ApiError("Rating must be a whole number between 1 and 5")
    values = _clean_testimonial(values)
    values["created_at"] = values["updated_at"] = utcnow()
    conn = get_db()
    testimonial_id = insert_row(conn, "testimonials", values)
    conn.commit()
    return jsonify(_fetch("testimonials", testimonial_id, "Testimonial")), 201


@content_bp.route('/testimonials/<int:testimonial_id>', methods=['PUT'])
@admin_required()
def update_testimonial(testimonial_id):
    _fetch("testimonials", testimonial_id, "Testimonial")
    values = _clean_testimonial(_pick(require_json(), TESTIMONIAL_FIELDS))
    if not values:
        return jsonify({"error": "No update data provided."}), 400
    for field in ("name", "content"):
        if field in values:
            _required(values, field)
    values["updated_at"] = utcnow()
    conn = get_db()
    update_row(conn, "testimonials", testimonial_id, values)
    conn.commit()
    return jsonify(_fetch("testimonials", testimonial_id, "Testimonial")), 200


@content_bp.route('/testimonials/<int:testimonial_id>', methods=['DELETE'])
@admin_required()
def delete_testimonial(testimonial_id):
    return _delete("testimonials", testimonial_id, "Testimonial")


# --- Vlogs ---
def youtube_video_id(url):
    """Extracts the video id from watch, youtu.be and embed URLs."""
    parsed = urlparse(url or "")
    host = (parsed.hostname or "").lower()
    if host.endswith("youtu.be"):
        video_id = parsed.path.strip("/").split("/")[0]
    elif host.endswith("youtube.com"):
        if parsed.path.startswith("/embed/"):
            video_id = parsed.path[len("/embed/"):].split("/")[0]
        else:
            video_id = parse_qs(parsed.query).get("v", [""])[0]
    else:
        return None
    return video_id or None


def _clean_vlog(values):
    if "youtube_url" in values:
        video_id = youtube_video_id(values["youtube_url"])
        if not video_id:
            raise ApiError("Invalid YouTube URL. Please provide a valid video URL.")
        if not values.get("thumbnail_url"):
            values["thumbnail_url"] = f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"
    for field in ("active", "featured"):
        if field in values:
            values[field] = 1 if parse_bool(values[field]) else 0
    if "views_count" in values:
        values["views_count"] = str(values["views_count"] or "0")
    return values


@content_bp.route('/vlogs', methods=['GET'])
def get_public_vlogs():
    where = "WHERE active = 1" if parse_bool(request.args.get('all')) else "WHERE active = 1 AND featured = 1"
    return jsonify(_list("vlogs", f"SELECT * FROM vlogs {where} ORDER BY created_at DESC, id DESC")), 200


@content_bp.route('/admin/vlogs', methods=['GET'])
@admin_required()
def get_all_vlogs():
    return jsonify(_list("vlogs", "SELECT * FROM vlogs ORDER BY created_at DESC, id DESC")), 200


@content_bp.route('/vlogs', methods=['POST'])
@admin_required()
def create_vlog():
    values = _pick(require_json(), VLOG_FIELDS)
    if not values.get("title") or not values.get("youtube_url"):
        return jsonify({"error": "Title and YouTube URL are required"}), 400
    values = _clean_vlog(values)
    values["created_at"] = values["updated_at"] = utcnow()
    conn = get_db()
    vlog_id = insert_row(conn, "vlogs", values)
    conn.commit()
    current_app.logger.info("Created vlog %s '%s'", vlog_id, values["title"])
    return jsonify(_fetch("vlogs", vlog_id, "Vlog")), 201


@content_bp.route('/vlogs/<int:vlog_id>', methods=['PUT'])
@admin_required()
def update_vlog(vlog_id):
    _fetch("vlogs", vlog_id, "Vlog")
    values = _clean_vlog(_pick(require_json(), VLOG_FIELDS))
    if not values:
        return jsonify({"error": "No update data provided."}), 400
    if "title" in values:
        _required(values, "title")
    values["updated_at"] = utcnow()
    conn = get_db()
    update_row(conn, "vlogs", vlog_id, values)
    conn.commit()
    return jsonify(_fetch("vlogs", vlog_id, "Vlog")), 200


@content_bp.route('/vlogs/<int:vlog_id>', methods=['DELETE'])
@admin_required()
def delete_vlog(vlog_id):
    return _delete("vlogs", vlog_id, "Vlog")


# --- Contact Messages ---
@content_bp.route('/messages', methods=['POST'])
def send_message():
    values = _pick(require_json(), ("name", "email", "subject", "message"))
    _required(values, "name", "email", "message")
    if not is_valid_email(values["email"]):
        return jsonify({"error": "Invalid email address"}), 400
    values["created_at"] = utcnow()
    conn = get_db()
    message_id = insert_row(conn, "messages", values)
    conn.commit()
    current_app.logger.info("Contact message %s received from %s", message_id, values["email"])
    return jsonify({"id": message_id, "message": "Message sent"}), 201


@content_bp.route('/messages', methods=['GET'])
@admin_required()
def get_messages():
    archived = request.args.get('archived')
    if archived is None:
        messages = _list("messages", "SELECT * FROM messages ORDER BY created_at DESC, id DESC")
    else:
        messages = _list("messages", "SELECT * FROM messages WHERE archived = ? ORDER BY created_at DESC, id DESC",
                         (1 if parse_bool(archived) else 0,))
    unread = get_db().execute("SELECT COUNT(*) FROM messages WHERE read = 0 AND archived = 0").fetchone()[0]
    return jsonify({"messages": messages, "unread_count": unread}), 200


@content_bp.route('/messages/<int:message_id>', methods=['PATCH'])
@admin_required()
def update_message(message_id):
    _fetch("messages", message_id, "Message")
    data = require_json()
    values = {key: 1 if parse_bool(data[key]) else 0 for key in ("read", "archived") if key in data}
    if not values:
        return jsonify({"error": "Nothing to update. Send read and/or archived."}), 400
    conn = get_db()
    update_row(conn, "messages", message_id, values)
    conn.commit()
    return jsonify(_fetch("messages", message_id, "Message")), 200


@content_bp.route('/messages/<int:message_id>', methods=['DELETE'])
@admin_required()
def delete_message(message_id):
    return _delete("messages", message_id, "Message")


# --- Certificates ---
@content_bp.route('/certificates/verify/<certificate_id>', methods=['GET'])
def verify_certificate(certificate_id):
    row = get_db().execute(
        "SELECT * FROM certificates WHERE certificate_id = ?", (certificate_id.strip(),)).fetchone()
    if row is None:
        current_app.logger.warning("Certificate lookup failed for '%s'", certificate_id)
        return jsonify({"verified": False, "error": "No matching certificate found"}), 404
    return jsonify({"verified": True, "certificate": dict(row)}), 200


@content_bp.route('/certificates', methods=['GET'])
@admin_required()
def get_certificates():
    return jsonify(_list("certificates", "SELECT * FROM certificates ORDER BY created_at DESC, id DESC")), 200


def _save_certificate(values, certificate_id=None):
    conn = get_db()
    try:
        if certificate_id is None:
            certificate_id = insert_row(conn, "certificates", values)
        else:
            update_row(conn, "certificates", certificate_id, values)
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise ApiError("Certificate ID already exists", 409)
    return certificate_id


@content_bp.route('/certificates', methods=['POST'])
@admin_required()
def create_certificate():
    values = _pick(require_json(), CERTIFICATE_FIELDS)
    if not values.get("certificate_id") or not values.get("type"):
        return jsonify({"error": "Certificate ID and type are required"}), 400
    if not isinstance(values["certificate_id"], str) or not isinstance(values["type"], str):
        return jsonify({"error": "Certificate ID and type must be text"}), 400
    values["certificate_id"] = values["certificate_id"].strip()
    values["created_at"] = values["updated_at"] = utcnow()
    certificate_id = _save_certificate(values)
    current_app.logger.info("Issued certificate %s", values["certificate_id"])
    return jsonify(_fetch("certificates", certificate_id, "Certificate")), 201


@content_bp.route('/certificates/<int:certificate_id>', methods=['PUT'])
@admin_required()
def update_certificate(certificate_id):
    _fetch("certificates", certificate_id, "Certificate")
    values = _pick(require_json(), CERTIFICATE_FIELDS)
    if not values:
        return jsonify({"error": "No update data provided."}), 400
    for field in ("certificate_id", "type"):
        if field in values:
            if not isinstance(values[field], str):
                raise ApiError("Certificate ID and type must be text")
            _required(values, field)
    values["updated_at"] = utcnow()
    _save_certificate(values, certificate_id)
    return jsonify(_fetch("certificates", certificate_id, "Certificate")), 200


@content_bp.route('/certificates/<int:certificate_id>', methods=['DELETE'])
@admin_required()
def delete_certificate(certificate_id):
    return _delete("certificates", certificate_id, "Certificate")


# --- Pages ---
def slugify(title):
    return re.sub(r"\s+", "-", title.strip().lower())


def _clean_page(values):
    for field in ("title", "slug", "content"):
        if field in values and not isinstance(values[field], str):
            raise ApiError(f"{field.capitalize()} must be text")
    if "status" in values and values["status"] not in config.PAGE_STATUSES:
        raise ApiError("Status must be draft or published")
    if "slug" in values:
        values["slug"] = slugify(values["slug"] or "")
        if not values["slug"]:
            raise ApiError("Slug cannot be empty")
    values["last_updated"] = today()
    return values


def _save_page(values, page_id=None):
    conn = get_db()
    try:
        if page_id is None:
            page_id = insert_row(conn, "pages", values)
        else:
            update_row(conn, "pages", page_id, values)
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise ApiError("A page with this slug already exists", 409)
    return page_id


@content_bp.route('/pages/<slug>', methods=['GET'])
def get_published_page(slug):
    row = get_db().execute(
        "SELECT * FROM pages WHERE slug = ? AND status = 'published'", (slug,)).fetchone()
    if row is None:
        return jsonify({"error": "Page not found"}), 404
    return jsonify(dict(row)), 200


@content_bp.route('/pages', methods=['GET'])
@admin_required()
def get_pages():
    return jsonify(_list("pages", "SELECT * FROM pages ORDER BY id")), 200


@content_bp.route('/pages', methods=['POST'])
@admin_required()
def create_page():
    values = _pick(require_json(), PAGE_FIELDS)
    if not values.get("title") or not values.get("content"):
        return jsonify({"error": "Title and content are required"}), 400
    if not values.get("slug"):
        values["slug"] = values["title"]
    values.setdefault("status", "draft")
    page_id = _save_page(_clean_page(values))
    current_app.logger.info("Created page %s '%s'", page_id, values["slug"])
    return jsonify(_fetch("pages", page_id, "Page")), 201


@content_bp.route('/pages/<int:page_id>', methods=['PUT'])
@admin_required()
def update_page(page_id):
    _fetch("pages", page_id, "Page")
    values = _pick(require_json(), PAGE_FIELDS)
    if not values:
        return jsonify({"error": "No update data provided."}), 400
    if "title" in values:
        _required(values, "title")
    _save_page(_clean_page(values), page_id)
    return jsonify(_fetch("pages", page_id, "Page")), 200


@content_bp.route('/pages/<int:page_id>', methods=['DELETE'])
@admin_required()
def delete_page(page_id):
    return _delete("pages", page_id, "Page")

# catalog.py
# Product catalog: fish, accessories and food unified into one product view.

import math

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

import config
import storage
from auth import admin_required, current_user_id
from database import get_db, utcnow, insert_row, update_row
from errors import ApiError, require_json
from pricing import calculate_discounted_price

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')

BASE_FIELDS = (
    "title", "category", "price", "discount_percentage", "stock_quantity",
    "description", "image_url", "video_url",
)
DETAIL_FIELDS = {
    "fish": ("type", "species", "size", "origin", "care_level", "lifespan", "tank_size", "water_parameters"),
    "accessories": ("type", "brand", "material", "dimensions", "compatibility"),
    "food": ("type", "brand", "weight", "suitable_for", "ingredients", "feeding_instructions"),
}
MEDIA_EXTENSIONS = config.IMAGE_EXTENSIONS | config.VIDEO_EXTENSIONS


# --- Helpers ---
def derive_category(product_type, details):
    if product_type == "fish":
        return details.get("species") or "fish"
    if product_type == "accessories":
        return "Accessories"
    return "Fish Food"


def parse_product_ref(product_ref):
    """Accepts '12' or the combined 'fish_12' form and returns (type or None, id)."""
    product_type = None
    raw_id = str(product_ref)
    if "_" in raw_id:
        product_type, raw_id = raw_id.rsplit("_", 1)
    try:
        return product_type, int(raw_id)
    except ValueError:
        raise ApiError("Product not found", 404)


def product_view(row, details):
    product = dict(row)
    for field in DETAIL_FIELDS[product["product_type"]]:
        product[field] = details.get(field) if details else None
    product["final_price"] = calculate_discounted_price(product["price"], product["discount_percentage"])
    product["in_stock"] = product["stock_quantity"] > 0
    return product


def load_products(where="", params=(), order="p.created_at DESC, p.id DESC", limit=None):
    """Fetches product rows and attaches the per-type detail columns."""
    conn = get_db()
    sql = f"SELECT p.* FROM products p {where} ORDER BY {order}"
    if limit is not None:
        sql += f" LIMIT {int(limit)}"
    rows = conn.execute(sql, params).fetchall()

    details = {}
    for product_type in config.PRODUCT_TYPES:
        ids = [row["id"] for row in rows if row["product_type"] == product_type]
        if not ids:
            continue
        placeholders = ", ".join("?" for _ in ids)
        for detail in conn.execute(
                f"SELECT * FROM {product_type} WHERE product_id IN ({placeholders})", ids).fetchall():
            details[detail["product_id"]] = dict(detail)
    return [product_view(row, details.get(row["id"])) for row in rows]


def fetch_product(product_ref):
    product_type, product_id = parse_product_ref(product_ref)
    products = load_products("WHERE p.id = ?", (product_id,))
    if not products or (product_type and products[0]["product_type"] != product_type):
        raise ApiError("Product not found", 404)
    return products[0]


def filter_products(products, search=None, category=None, sort="newest"):
    """Search, category filter and sort, then move out-of-stock items to the end."""
    results = list(products)

    if search:
        needle = search.strip().lower()
        results = [
            product for product in results
            if any(needle in str(product.get(field) or "").lower()
                   for field in ("title", "product_type", "category", "species", "type"))
        ]

    if category and category.lower() != "all":
        wanted = category.lower()
        results = [product for product in results if (product.get("category") or "").lower() == wanted]

    if sort == "price-low":
        results.sort(key=lambda product: product["final_price"])
    elif sort == "price-high":
        results.sort(key=lambda product: product["final_price"], reverse=True)
    else:
        results.sort(key=lambda product: (product["created_at"], product["id"]), reverse=True)

    # Stable: keeps the chosen order inside each group.
    results.sort(key=lambda product: product["stock_quantity"] <= 0)
    return results


def _number(value, field, cast, minimum=None, maximum=None):
    if isinstance(value, bool):
        raise ApiError(f"{field} must be a number")
    try:
        number = cast(value)
    except (TypeError, ValueError, OverflowError):
        raise ApiError(f"{field} must be a number")
    if not math.isfinite(number):
        raise ApiError(f"{field} must be a number")
    if cast is int and isinstance(value, float) and not value.is_integer():
        raise ApiError(f"{field} must be a whole number")
    if minimum is not None and number < minimum:
        raise ApiError(f"{field} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ApiError(f"{field} must be at most {maximum}")
    return number


def clean_product_fields(data, product_type):
    """Splits a payload into validated base and detail columns, dropping unknown keys."""
    base = {key: data[key] for key in BASE_FIELDS if key in data}
    details = {key: data[key] for key in DETAIL_FIELDS[product_type] if key in data}

    if "title" in base and not str(base["title"] or "").strip():
        raise ApiError("Title cannot be empty")
    if "price" in base:
        base["price"] = _number(base["price"], "price", float, minimum=0)
    if "stock_quantity" in base:
        base["stock_quantity"] = _number(base["stock_quantity"], "stock_quantity", int, minimum=0)
    if "discount_percentage" in base:
        base["discount_percentage"] = _number(
            base["discount_percentage"] or 0, "discount_percentage", float, minimum=0, maximum=100)
    return base, details


def _type_filter(product_type):
    if product_type and product_type not in config.PRODUCT_TYPES:
        raise ApiError(f"Unknown product type '{product_type}'")
    return product_type


# --- Category & Listing Endpoints ---
@catalog_bp.route('/categories', methods=['GET'])
def get_categories():
    product_type = request.args.get('type')
    if product_type:
        return jsonify(config.PRODUCT_CATEGORIES.get(product_type, [])), 200
    return jsonify(config.PRODUCT_CATEGORIES), 200


@catalog_bp.route('/products', methods=['GET'])
def get_all_products():
    product_type = _type_filter(request.args.get('type'))
    sort = request.args.get('sort', 'newest')
    if sort not in config.SORT_OPTIONS:
        return jsonify({"error": f"Unknown sort option '{sort}'"}), 400

    if product_type:
        products = load_products("WHERE p.product_type = ?", (product_type,))
    else:
        products = load_products()
    results = filter_products(products, request.args.get('search'), request.args.get('category'), sort)
    return jsonify(results), 200


@catalog_bp.route('/products/featured', methods=['GET'])
def get_featured_products():
    limit = _number(request.args.get('limit', 2), "limit", int, minimum=1, maximum=50)
    featured = {}
    for fish_type in config.FEATURED_FISH_TYPES:
        featured[fish_type] = load_products(
            "JOIN fish f ON f.product_id = p.id WHERE f.type = ? AND p.stock_quantity > 0",
            (fish_type,), limit=limit)
    featured["food"] = load_products(
        "WHERE p.product_type = 'food' AND p.stock_quantity > 0", limit=limit)
    return jsonify(featured), 200


@catalog_bp.route('/search', methods=['GET'])
def search_products():
    query = (request.args.get('q') or "").strip().lower()
    groups = {"all": [], "fish": [], "accessories": [], "food": []}
    if not query:
        return jsonify(groups), 200

    for product in load_products():
        fields = (product.get("title"), product.get("species"), product.get("type"), product["product_type"])
        if any(query in field.lower() for field in fields if field):
            groups["all"].append(product)
            groups[product["product_type"]].append(product)
    return jsonify(groups), 200


@catalog_bp.route('/products/<product_ref>', methods=['GET'])
def get_product(product_ref):
    product = fetch_product(product_ref)
    summary = get_db().execute(
        "SELECT COUNT(*) AS count, AVG(rating) AS average FROM reviews WHERE product_id = ?",
        (product["id"],)).fetchone()
    product["rating"] = {
        "count": summary["count"],
        "average": round(summary["average"], 1) if summary["average"] is not None else None,
    }
    return jsonify(product), 200


# --- Product Management (Admin only) ---
@catalog_bp.route('/products', methods=['POST'])
@admin_required()
def create_product():
    data = require_json()
    product_type = data.get('product_type')
    if product_type not in config.PRODUCT_TYPES:
        return jsonify({"error": "product_type must be one of fish, accessories, food"}), 400
    if not data.get('title') or data.get('price') is None:
        return jsonify({"error": "Title and price are required fields."}), 400

    base, details = clean_product_fields(data, product_type)
    base.setdefault("category", None)
    if not base["category"]:
        base["category"] = derive_category(product_type, details)
    now = utcnow()
    base.update(product_type=product_type, created_at=now, updated_at=now)

    conn = get_db()
    with conn:
        product_id = insert_row(conn, "products", base)
        details["product_id"] = product_id
        insert_row(conn, product_type, details)
    current_app.logger.info("Created %s product %s '%s'", product_type, product_id, base["title"])
    return jsonify(fetch_product(product_id)), 201


@catalog_bp.route('/products/<int:product_id>', methods=['PUT'])
@admin_required()
def update_product(product_id):
    data = require_json()
    if not data:
        return jsonify({"error": "No update data provided."}), 400

    existing = fetch_product(product_id)
    product_type = existing["product_type"]
    if data.get('product_type') not in (None, product_type):
        return jsonify({"error": "Product type cannot be changed"}), 400

    base, details = clean_product_fields(data, product_type)
    if "category" in base and not base["category"]:
        base["category"] = derive_category(product_type, {**existing, **details})
    elif "category" not in base and product_type == "fish" and "species" in details:
        base["category"] = derive_category(product_type, details)
    if not base and not details:
        return jsonify({"error": "No valid fields to update."}), 400
    base["updated_at"] = utcnow()

    conn = get_db()
    with conn:
        update_row(conn, "products", product_id, base)
        if details:
            set_clause = ", ".join([f"{key} = ?" for key in details])
            conn.execute(f"UPDATE {product_type} SET {set_clause} WHERE product_id = ?",
                         tuple(details.values()) + (product_id,))
    current_app.logger.info("Updated product %s", product_id)
    return jsonify(fetch_product(product_id)), 200


@catalog_bp.route('/products/<int:product_id>', methods=['DELETE'])
@admin_required()
def delete_product(product_id):
    conn = get_db()
    cursor = conn.execute('DELETE FROM products WHERE id = ?', (product_id,))
    conn.commit()
    if cursor.rowcount == 0:
        return jsonify({"error": "Product not found"}), 404
    current_app.logger.info("Deleted product %s", product_id)
    return jsonify({"message": f"Product with ID {product_id} deleted"}), 200


@catalog_bp.route('/products/media', methods=['POST'])
@admin_required()
def upload_product_media():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({"error": "No file provided"}), 400
    ext = storage.file_extension(upload.filename)
    if ext not in MEDIA_EXTENSIONS:
        return jsonify({"error": "Unsupported file type"}), 400
    path = storage.save_upload("products", storage.unique_name(ext), upload)
    return jsonify({"url": storage.public_url("products", path), "path": path}), 201


# --- Reviews ---
@catalog_bp.route('/products/<product_ref>/reviews', methods=['GET'])
def get_product_reviews(product_ref):
    product = fetch_product(product_ref)
    rows = get_db().execute('''
        SELECT r.id, r.product_id, r.customer_id, r.rating, r.comment, r.created_at,
               u.full_name, u.email
        FROM reviews r
        LEFT JOIN users u ON r.customer_id = u.id
        WHERE r.product_id = ?
        ORDER BY r.created_at DESC, r.id DESC
    ''', (product["id"],)).fetchall()

    reviews = []
    for row in rows:
        review = dict(row)
        email = review.pop("email")
        full_name = review.pop("full_name")
        review["reviewer"] = full_name or (email.split("@")[0] if email else "Anonymous")
        reviews.append(review)
    return jsonify(reviews), 200


@catalog_bp.route('/products/<product_ref>/reviews', methods=['POST'])
@jwt_required()
def add_product_review(product_ref):
    product = fetch_product(product_ref)
    data = require_json()
    rating = data.get('rating')
    comment = (data.get('comment') or "").strip()
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        return jsonify({"error": "Rating must be a whole number between 1 and 5"}), 400
    if not comment:
        return jsonify({"error": "Comment is required"}), 400

    conn = get_db()
    cursor = conn.execute(
        "INSERT INTO reviews (product_id, customer_id, rating, comment, created_at) VALUES (?, ?, ?, ?, ?)",
        (product["id"], current_user_id(), rating, comment, utcnow()))
    conn.commit()
    review = dict(conn.execute("SELECT * FROM reviews WHERE id = ?", (cursor.lastrowid,)).fetchone())
    return jsonify(review), 201

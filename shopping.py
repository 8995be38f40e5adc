# shopping.py
# Per-user cart and wishlist.

from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required

from auth import current_user_id
from catalog import fetch_product, load_products
from database import get_db, utcnow
from errors import ApiError, require_json
from pricing import line_total, order_total

shopping_bp = Blueprint('shopping', __name__, url_prefix='/api')

CART_PRODUCT_FIELDS = (
    "title", "price", "final_price", "discount_percentage", "image_url", "video_url",
    "product_type", "category", "stock_quantity",
)


def _quantity(value, default=None):
    if value is None and default is not None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ApiError("Quantity must be a whole number")
    if value < 1:
        raise ApiError("Quantity must be at least 1")
    return value


def _products_by_id(product_ids):
    if not product_ids:
        return {}
    placeholders = ", ".join("?" for _ in product_ids)
    products = load_products(f"WHERE p.id IN ({placeholders})", tuple(product_ids))
    return {product["id"]: product for product in products}


# --- Cart ---
def cart_items(user_id):
    rows = get_db().execute(
        "SELECT product_id, quantity, created_at FROM cart_items WHERE customer_id = ? ORDER BY id",
        (user_id,)).fetchall()
    products = _products_by_id([row["product_id"] for row in rows])

    items = []
    for row in rows:
        product = products[row["product_id"]]
        item = {"product_id": row["product_id"], "quantity": row["quantity"], "added_at": row["created_at"]}
        item.update({field: product[field] for field in CART_PRODUCT_FIELDS})
        item["size"] = product.get("size") if product["product_type"] == "fish" else None
        item["line_total"] = line_total(product["final_price"], row["quantity"])
        items.append(item)
    return items


def cart_summary(user_id):
    items = cart_items(user_id)
    return {
        "items": items,
        "subtotal": order_total([{"price": item["final_price"], "quantity": item["quantity"]} for item in items]),
        "count": sum(item["quantity"] for item in items),
    }


def add_to_cart(user_id, product_ref, quantity=1):
    product = fetch_product(product_ref)
    if product["stock_quantity"] <= 0:
        raise ApiError("Product is out of stock", 409)

    conn = get_db()
    existing = conn.execute(
        "SELECT id FROM cart_items WHERE customer_id = ? AND product_id = ?",
        (user_id, product["id"])).fetchone()
    if existing:
        conn.execute("UPDATE cart_items SET quantity = quantity + ? WHERE id = ?", (quantity, existing["id"]))
    else:
        conn.execute(
            "INSERT INTO cart_items (customer_id, product_id, quantity, created_at) VALUES (?, ?, ?, ?)",
            (user_id, product["id"], quantity, utcnow()))
    conn.commit()
    return product


def clear_cart(user_id, conn=None):
    conn = conn or get_db()
    conn.execute("DELETE FROM cart_items WHERE customer_id = ?", (user_id,))


@shopping_bp.route('/cart', methods=['GET'])
@jwt_required()
def get_cart():
    return jsonify(cart_summary(current_user_id())), 200


@shopping_bp.route('/cart', methods=['POST'])
@jwt_required()
def add_cart_item():
    data = require_json()
    if data.get('product_id') is None:
        return jsonify({"error": "product_id is required"}), 400
    quantity = _quantity(data.get('quantity'), default=1)
    user_id = current_user_id()
    add_to_cart(user_id, data['product_id'], quantity)
    return jsonify(cart_summary(user_id)), 200


@shopping_bp.route('/cart/<int:product_id>', methods=['PUT'])
@jwt_required()
def update_cart_item(product_id):
    data = require_json()
    quantity = _quantity(data.get('quantity'))
    user_id = current_user_id()
    conn = get_db()
    cursor = conn.execute(
        "UPDATE cart_items SET quantity = ? WHERE customer_id = ? AND product_id = ?",
        (quantity, user_id, product_id))
    conn.commit()
    if cursor.rowcount == 0:
        return jsonify({"error": "Item not in cart"}), 404
    return jsonify(cart_summary(user_id)), 200


@shopping_bp.route('/cart/<int:product_id>', methods=['DELETE'])
@jwt_required()
def remove_cart_item(product_id):
    user_id = current_user_id()
    conn = get_db()
    cursor = conn.execute(
        "DELETE FROM cart_items WHERE customer_id = ? AND product_id = ?", (user_id, product_id))
    conn.commit()
    if cursor.rowcount == 0:
        return jsonify({"error": "Item not in cart"}), 404
    return jsonify(cart_summary(user_id)), 200


@shopping_bp.route('/cart', methods=['DELETE'])
@jwt_required()
def empty_cart():
    user_id = current_user_id()
    conn = get_db()
    clear_cart(user_id, conn)
    conn.commit()
    return jsonify(cart_summary(user_id)), 200


# --- Wishlist ---
def in_wishlist(user_id, product_id):
    row = get_db().execute(
        "SELECT 1 FROM wishlist_items WHERE customer_id = ? AND product_id = ?",
        (user_id, product_id)).fetchone()
    return row is not None


def remove_from_wishlist(user_id, product_id):
    conn = get_db()
    cursor = conn.execute(
        "DELETE FROM wishlist_items WHERE customer_id = ? AND product_id = ?", (user_id, product_id))
    conn.commit()
    return cursor.rowcount > 0


def add_to_wishlist(user_id, product_id):
    """Returns True when the product was added, False when it was already there."""
    if in_wishlist(user_id, product_id):
        return False
    conn = get_db()
    conn.execute(
        "INSERT INTO wishlist_items (customer_id, product_id, created_at) VALUES (?, ?, ?)",
        (user_id, product_id, utcnow()))
    conn.commit()
    return True


@shopping_bp.route('/wishlist', methods=['GET'])
@jwt_required()
def get_wishlist():
    rows = get_db().execute(
        "SELECT product_id, created_at FROM wishlist_items WHERE customer_id = ? ORDER BY created_at DESC, id DESC",
        (current_user_id(),)).fetchall()
    products = _products_by_id([row["product_id"] for row in rows])
    items = []
    for row in rows:
        item = dict(products[row["product_id"]])
        item["product_id"] = row["product_id"]
        item["added_at"] = row["created_at"]
        items.append(item)
    return jsonify(items), 200


@shopping_bp.route('/wishlist', methods=['POST'])
@jwt_required()
def add_wishlist_item():
    data = require_json()
    if data.get('product_id') is None:
        return jsonify({"error": "product_id is required"}), 400
    product = fetch_product(data['product_id'])
    added = add_to_wishlist(current_user_id(), product["id"])
    message = "Added to wishlist" if added else "Already in wishlist"
    return jsonify({"message": message, "product_id": product["id"], "in_wishlist": True}), 201 if added else 200


@shopping_bp.route('/wishlist/<int:product_id>', methods=['GET'])
@jwt_required()
def check_wishlist_item(product_id):
    return jsonify({"product_id": product_id, "in_wishlist": in_wishlist(current_user_id(), product_id)}), 200


@shopping_bp.route('/wishlist/<int:product_id>', methods=['DELETE'])
@jwt_required()
def remove_wishlist_item(product_id):
    if not remove_from_wishlist(current_user_id(), product_id):
        return jsonify({"error": "Item not in wishlist"}), 404
    return jsonify({"message": "Removed from wishlist", "product_id": product_id, "in_wishlist": False}), 200


@shopping_bp.route('/wishlist/<int:product_id>/toggle', methods=['POST'])
@jwt_required()
def toggle_wishlist_item(product_id):
    user_id = current_user_id()
    if remove_from_wishlist(user_id, product_id):
        return jsonify({"product_id": product_id, "in_wishlist": False}), 200
    product = fetch_product(product_id)
    add_to_wishlist(user_id, product["id"])
    return jsonify({"product_id": product_id, "in_wishlist": True}), 200


@shopping_bp.route('/wishlist', methods=['DELETE'])
@jwt_required()
def clear_wishlist():
    conn = get_db()
    conn.execute("DELETE FROM wishlist_items WHERE customer_id = ?", (current_user_id(),))
    conn.commit()
    return jsonify([]), 200


@shopping_bp.route('/wishlist/<int:product_id>/move-to-cart', methods=['POST'])
@jwt_required()
def move_wishlist_item_to_cart(product_id):
    user_id = current_user_id()
    if not in_wishlist(user_id, product_id):
        return jsonify({"error": "Item not in wishlist"}), 404
    product = add_to_cart(user_id, product_id)
    remove_from_wishlist(user_id, product_id)
    current_app.logger.info("User %s moved product %s from wishlist to cart", user_id, product["id"])
    return jsonify(cart_summary(user_id)), 200

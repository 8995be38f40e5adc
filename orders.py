# orders.py
# Checkout, order history and the admin order desk.

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

import config
from auth import admin_required, current_user_id, current_is_admin, get_user
from catalog import fetch_product
from database import get_db, utcnow, insert_row
from errors import ApiError, require_json
from pricing import line_total, order_total
from shopping import cart_items, clear_cart

orders_bp = Blueprint('orders', __name__, url_prefix='/api')

SHIPPING_FIELDS = {
    "shipping_address": "address",
    "shipping_city": "city",
    "shipping_state": "state",
    "shipping_zip_code": "zip_code",
    "shipping_country": "country",
}
ADMIN_SORT_FIELDS = ("created_at", "total_amount", "status", "customer_name")


def serialize_orders(order_rows):
    """Attaches items to each order row."""
    orders = [dict(row) for row in order_rows]
    if not orders:
        return []
    placeholders = ", ".join("?" for _ in orders)
    item_rows = get_db().execute(
        f"SELECT * FROM order_items WHERE order_id IN ({placeholders}) ORDER BY id",
        tuple(order["id"] for order in orders)).fetchall()

    by_order = {}
    for item in item_rows:
        by_order.setdefault(item["order_id"], []).append(dict(item))
    for order in orders:
        order["order_date"] = order["created_at"]
        order["items"] = by_order.get(order["id"], [])
    return orders


def get_order_or_404(order_id):
    row = get_db().execute('SELECT * FROM orders WHERE id = ?', (order_id,)).fetchone()
    if row is None:
        raise ApiError("Order not found", 404)
    return row


def _requested_items(data, user_id):
    """Returns [(product_ref, quantity)] from the payload, or from the cart when none is given."""
    if data.get('items') is None:
        return [(item["product_id"], item["quantity"]) for item in cart_items(user_id)], True

    items = data['items']
    if not isinstance(items, list):
        raise ApiError("items must be a list")
    requested = []
    for item in items:
        if not isinstance(item, dict) or item.get('product_id') is None:
            raise ApiError("Each item needs a product_id")
        quantity = item.get('quantity', 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ApiError("Quantity must be at least 1")
        requested.append((item['product_id'], quantity))
    return requested, False


def build_order_lines(requested):
    """Prices each requested line from the catalog and checks stock."""
    lines = []
    for product_ref, quantity in requested:
        product = fetch_product(product_ref)
        if quantity > product["stock_quantity"]:
            raise ApiError(f"Insufficient stock for {product['title']}", 409)
        lines.append({
            "product_id": product["id"],
            "product_name": product["title"],
            "product_type": product["product_type"],
            "size": product.get("size") if product["product_type"] == "fish" else None,
            "quantity": quantity,
            "price": product["final_price"],
        })
    return lines


# --- Customer Endpoints ---
@orders_bp.route('/orders', methods=['POST'])
@jwt_required()
def create_order():
    data = require_json()
    user_id = current_user_id()
    user = get_user(user_id)

    requested, from_cart = _requested_items(data, user_id)
    if not requested:
        return jsonify({"error": "Cart is empty"}), 400
    lines = build_order_lines(requested)

    order = {
        "customer_id": user_id,
        "customer_name": data.get('customer_name') or user["full_name"] or user["email"].split("@")[0],
        "customer_email": data.get('customer_email') or user["email"],
        "payment_method": data.get('payment_method') or config.DEFAULT_PAYMENT_METHOD,
        "payment_status": "pending",
        "status": "pending",
        "total_amount": order_total(lines),
    }
    for field, profile_field in SHIPPING_FIELDS.items():
        order[field] = data.get(field) or user[profile_field]
    order["shipping_address"] = order["shipping_address"] or config.DEFAULT_SHIPPING_ADDRESS
    order["created_at"] = order["updated_at"] = utcnow()

    conn = get_db()
    with conn:
        order_id = insert_row(conn, "orders", order)
        for line in lines:
            updated = conn.execute(
                "UPDATE products SET stock_quantity = stock_quantity - ? WHERE id = ? AND stock_quantity >= ?",
                (line["quantity"], line["product_id"], line["quantity"]))
            if updated.rowcount == 0:
                raise ApiError(f"Insufficient stock for {line['product_name']}", 409)
            conn.execute('''
                INSERT INTO order_items
                    (order_id, product_id, product_name, product_type, size, quantity, price_per_unit, total_price)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ''', (order_id, line["product_id"], line["product_name"], line["product_type"], line["size"],
                  line["quantity"], line["price"], line_total(line["price"], line["quantity"])))
        if from_cart:
            clear_cart(user_id, conn)

    current_app.logger.info("Order %s placed by user %s for %.2f", order_id, user_id, order["total_amount"])
    return jsonify(serialize_orders([get_order_or_404(order_id)])[0]), 201


@orders_bp.route('/orders', methods=['GET'])
@jwt_required()
def get_my_orders():
    rows = get_db().execute(
        'SELECT * FROM orders WHERE customer_id = ? ORDER BY created_at DESC, id DESC',
        (current_user_id(),)).fetchall()
    return jsonify(serialize_orders(rows)), 200


@orders_bp.route('/orders/<int:order_id>', methods=['GET'])
@jwt_required()
def get_order_details(order_id):
    order = get_order_or_404(order_id)
    # Other customers' orders look missing rather than forbidden.
    if order["customer_id"] != current_user_id() and not current_is_admin():
        return jsonify({"error": "Order not found"}), 404
    return jsonify(serialize_orders([order])[0]), 200


# --- Admin Endpoints ---
@orders_bp.route('/admin/orders', methods=['GET'])
@admin_required()
def get_all_orders():
    status = request.args.get('status', 'all')
    if status != 'all' and status not in config.ORDER_STATUSES:
        return jsonify({"error": f"Unknown status '{status}'"}), 400
    sort = request.args.get('sort', 'created_at')
    if sort not in ADMIN_SORT_FIELDS:
        return jsonify({"error": f"Cannot sort by '{sort}'"}), 400
    direction = request.args.get('direction', 'desc').lower()
    if direction not in ('asc', 'desc'):
        return jsonify({"error": "direction must be asc or desc"}), 400

    orders = serialize_orders(get_db().execute('SELECT * FROM orders').fetchall())
    if status != 'all':
        orders = [order for order in orders if order["status"] == status]
    search = (request.args.get('search') or "").strip().lower()
    if search:
        orders = [
            order for order in orders
            if search in str(order["id"]) or search in order["customer_name"].lower()
            or search in order["customer_email"].lower()
        ]
    orders.sort(key=lambda order: (order[sort], order["id"]), reverse=(direction == 'desc'))
    return jsonify(orders), 200


def restock(conn, order_id):
    conn.execute('''
        UPDATE products SET stock_quantity = stock_quantity + (
            SELECT COALESCE(SUM(oi.quantity), 0) FROM order_items oi
            WHERE oi.order_id = ? AND oi.product_id = products.id
        )
        WHERE id IN (SELECT product_id FROM order_items WHERE order_id = ? AND product_id IS NOT NULL)
    ''', (order_id, order_id))


@orders_bp.route('/orders/<int:order_id>/status', methods=['PUT'])
@admin_required()
def update_order_status(order_id):
    data = require_json()
    if not data or 'status' not in data:
        return jsonify({"error": "Status is required"}), 400
    new_status = data['status']
    if new_status not in config.ORDER_STATUSES:
        return jsonify({"error": f"Invalid status. Must be one of: {', '.join(config.ORDER_STATUSES)}"}), 400

    order = get_order_or_404(order_id)
    conn = get_db()
    with conn:
        if new_status == "cancelled" and order["status"] != "cancelled":
            restock(conn, order_id)
        conn.execute('UPDATE orders SET status = ?, updated_at = ? WHERE id = ?', (new_status, utcnow(), order_id))
    current_app.logger.info("Order %s status updated to %s", order_id, new_status)
    return jsonify({"message": f"Order {order_id} status updated to {new_status}"}), 200


@orders_bp.route('/orders/<int:order_id>/payment-status', methods=['PUT'])
@admin_required()
def update_payment_status(order_id):
    data = require_json()
    payment_status = data.get('payment_status')
    if payment_status not in config.PAYMENT_STATUSES:
        return jsonify({"error": f"Invalid payment status. Must be one of: {', '.join(config.PAYMENT_STATUSES)}"}), 400

    get_order_or_404(order_id)
    conn = get_db()
    conn.execute('UPDATE orders SET payment_status = ?, updated_at = ? WHERE id = ?',
                 (payment_status, utcnow(), order_id))
    conn.commit()
    current_app.logger.info("Order %s payment status updated to %s", order_id, payment_status)
    return jsonify({"message": f"Order {order_id} payment status updated to {payment_status}"}), 200

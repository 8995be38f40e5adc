# pricing.py
# Price arithmetic shared by the catalog, cart and checkout.


def calculate_discounted_price(original_price, discount_percentage):
    """Apply a percentage discount, ignoring values outside (0, 100]."""
    if not discount_percentage or discount_percentage <= 0 or discount_percentage > 100:
        return original_price
    discount_amount = original_price * (discount_percentage / 100)
    return round(original_price - discount_amount, 2)


def line_total(price, quantity):
    return round(price * quantity, 2)


def order_total(items):
    """Sum of line totals for items shaped like {"price": ..., "quantity": ...}."""
    return round(sum(item["price"] * item["quantity"] for item in items), 2)

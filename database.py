# database.py
# SQLite schema, connections and seed data for the Aro Bazzar backend.

import sqlite3
import datetime
import logging

from flask import g

import config
from extensions import bcrypt

logger = logging.getLogger(__name__)

DB_NAME = config.DB_NAME

SCHEMA = [
    '''
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        is_admin INTEGER NOT NULL DEFAULT 0,
        full_name TEXT, phone TEXT,
        address TEXT, city TEXT, state TEXT, zip_code TEXT, country TEXT,
        avatar_url TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    ''',
    # Shared columns for every sellable item; per-type details live in fish/accessories/food.
    '''
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        product_type TEXT NOT NULL CHECK (product_type IN ('fish', 'accessories', 'food')),
        title TEXT NOT NULL,
        category TEXT NOT NULL,
        price REAL NOT NULL,
        discount_percentage REAL NOT NULL DEFAULT 0,
        stock_quantity INTEGER NOT NULL DEFAULT 0,
        description TEXT,
        image_url TEXT,
        video_url TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS fish (
        product_id INTEGER PRIMARY KEY REFERENCES products(id) ON DELETE CASCADE,
        type TEXT, species TEXT, size TEXT, origin TEXT, care_level TEXT,
        lifespan TEXT, tank_size TEXT, water_parameters TEXT
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS accessories (
        product_id INTEGER PRIMARY KEY REFERENCES products(id) ON DELETE CASCADE,
        type TEXT, brand TEXT, material TEXT, dimensions TEXT, compatibility TEXT
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS food (
        product_id INTEGER PRIMARY KEY REFERENCES products(id) ON DELETE CASCADE,
        type TEXT, brand TEXT, weight TEXT, suitable_for TEXT,
        ingredients TEXT, feeding_instructions TEXT
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS reviews (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
        customer_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
        rating INTEGER NOT NULL,
        comment TEXT,
        created_at TEXT NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS cart_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
        quantity INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        UNIQUE (customer_id, product_id)
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS wishlist_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL,
        UNIQUE (customer_id, product_id)
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
        customer_name TEXT NOT NULL,
        customer_email TEXT NOT NULL,
        shipping_address TEXT NOT NULL,
        shipping_city TEXT, shipping_state TEXT, shipping_zip_code TEXT, shipping_country TEXT,
        payment_method TEXT NOT NULL,
        payment_status TEXT NOT NULL DEFAULT 'pending',
        status TEXT NOT NULL DEFAULT 'pending',
        total_amount REAL NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS order_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_id INTEGER NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
        product_id INTEGER REFERENCES products(id) ON DELETE SET NULL,
        product_name TEXT NOT NULL,
        product_type TEXT,
        size TEXT,
        quantity INTEGER NOT NULL,
        price_per_unit REAL NOT NULL,
        total_price REAL NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS offers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT,
        deadline TEXT,
        background_image TEXT,
        category TEXT NOT NULL DEFAULT 'all',
        target_url TEXT NOT NULL DEFAULT '/products',
        product_name TEXT,
        active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS testimonials (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        role TEXT,
        company TEXT,
        content TEXT NOT NULL,
        rating INTEGER NOT NULL,
        avatar_url TEXT,
        is_featured INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS vlogs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT,
        youtube_url TEXT NOT NULL,
        thumbnail_url TEXT,
        duration TEXT,
        views_count TEXT NOT NULL DEFAULT '0',
        active INTEGER NOT NULL DEFAULT 1,
        featured INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        subject TEXT,
        message TEXT NOT NULL,
        read INTEGER NOT NULL DEFAULT 0,
        archived INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS certificates (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        certificate_id TEXT UNIQUE NOT NULL,
        type TEXT NOT NULL,
        issue_date TEXT,
        breeder TEXT,
        location TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS pages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        slug TEXT UNIQUE NOT NULL,
        content TEXT,
        status TEXT NOT NULL DEFAULT 'draft',
        last_updated TEXT NOT NULL
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS page_settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        page TEXT NOT NULL,
        section TEXT NOT NULL,
        banner_image TEXT,
        background_video TEXT,
        about_image1 TEXT, about_image2 TEXT, about_image3 TEXT, about_image4 TEXT,
        updated_at TEXT NOT NULL,
        UNIQUE (page, section)
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS website_config (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        section TEXT NOT NULL,
        name TEXT NOT NULL,
        value TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'text',
        description TEXT,
        last_updated TEXT NOT NULL,
        UNIQUE (section, name)
    )
    ''',
]

# Dropped children-first so foreign keys never block a reset.
TABLES = [
    "website_config", "page_settings", "pages", "certificates", "messages", "vlogs",
    "testimonials", "offers", "order_items", "orders", "wishlist_items", "cart_items",
    "reviews", "food", "accessories", "fish", "products", "users",
]

DEFAULT_PAGES = [
    ("About Us", "about",
     "Our company is dedicated to providing the highest quality exotic fish species.", "published"),
    ("Contact Information", "contact",
     "Contact us at info@lifestyleaqua.com or call us at (555) 123-4567.", "published"),
    ("Shipping & Returns", "shipping-returns",
     "We offer worldwide shipping for all our products. Returns accepted within 30 days of purchase.",
     "published"),
    ("Privacy Policy", "privacy-policy",
     "We only collect the information needed to process your orders and never sell it.", "published"),
    ("Terms & Conditions", "terms-conditions",
     "Live fish are shipped at the buyer's risk once handed to the courier.", "published"),
]

DEFAULT_OFFERS = [
    ("Summer Sale", "Get up to 25% off on select premium Arowana species", "Until August 15",
     "https://images.unsplash.com/photo-1520656038254-76ae307726a0?q=80&w=1200", "arowana"),
    ("New Arrivals", "Just landed: Exotic Malaysian Blue Base Golden Arowana", "Limited Stock",
     "https://images.unsplash.com/photo-1520301255226-bf5f144451c1?q=80&w=1200", "arowana"),
    ("Coming Soon", "Premium aquarium equipment - Pre-order available", "Arriving September 1",
     "https://images.unsplash.com/photo-1571438188835-b7f91387e7d3?q=80&w=1200", "accessories"),
]

DEFAULT_PAGE_SETTINGS = [("home", "hero"), ("home", "about")]


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def today():
    return datetime.date.today().isoformat()


def get_db_connection():
    """Creates a connection to the SQLite database."""
    conn = sqlite3.connect(DB_NAME, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_db():
    """Returns the connection for the current request, opening it on first use."""
    if "db" not in g:
        g.db = get_db_connection()
    return g.db


def close_db(exc=None):
    conn = g.pop("db", None)
    if conn is not None:
        conn.close()


def row_to_dict(row, bool_fields=()):
    if row is None:
        return None
    data = dict(row)
    for field in bool_fields:
        if field in data and data[field] is not None:
            data[field] = bool(data[field])
    return data


def insert_row(conn, table, values):
    """INSERT from a column->value dict; returns the new row id."""
    columns = ", ".join(values)
    placeholders = ", ".join("?" for _ in values)
    cursor = conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(values.values()))
    return cursor.lastrowid


def update_row(conn, table, row_id, values):
    """UPDATE by id from a column->value dict; returns the number of rows touched."""
    set_clause = ", ".join([f"{key} = ?" for key in values])
    cursor = conn.execute(f"UPDATE {table} SET {set_clause} WHERE id = ?", tuple(values.values()) + (row_id,))
    return cursor.rowcount


def init_db():
    """Initializes the database, creating tables and seeding defaults."""
    conn = get_db_connection()
    cursor = conn.cursor()
    logger.info("Initializing database %s", DB_NAME)

    for statement in SCHEMA:
        cursor.execute(statement)

    cursor.execute("SELECT id FROM users WHERE is_admin = 1")
    if not cursor.fetchone():
        password_hash = bcrypt.generate_password_hash(config.DEFAULT_ADMIN_PASSWORD).decode('utf-8')
        now = utcnow()
        cursor.execute(
            "INSERT OR IGNORE INTO users (email, password_hash, is_admin, full_name, created_at, updated_at) "
            "VALUES (?, ?, 1, 'Administrator', ?, ?)",
            (config.DEFAULT_ADMIN_EMAIL, password_hash, now, now)
        )
        logger.warning("!" * 56)
        logger.warning("!!! No admin user found. Created default admin '%s'", config.DEFAULT_ADMIN_EMAIL)
        logger.warning("!!! Default admin password: '%s'", config.DEFAULT_ADMIN_PASSWORD)
        logger.warning("!!! PLEASE LOG IN AND CHANGE THIS PASSWORD.")
        logger.warning("!" * 56)

    if cursor.execute("SELECT COUNT(*) FROM pages").fetchone()[0] == 0:
        cursor.executemany(
            "INSERT INTO pages (title, slug, content, status, last_updated) VALUES (?, ?, ?, ?, ?)",
            [page + (today(),) for page in DEFAULT_PAGES]
        )

    if cursor.execute("SELECT COUNT(*) FROM offers").fetchone()[0] == 0:
        now = utcnow()
        cursor.executemany(
            "INSERT INTO offers (title, description, deadline, background_image, category, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            [offer + (now, now) for offer in DEFAULT_OFFERS]
        )

    for page, section in DEFAULT_PAGE_SETTINGS:
        cursor.execute(
            "INSERT OR IGNORE INTO page_settings (page, section, updated_at) VALUES (?, ?, ?)",
            (page, section, utcnow())
        )

    conn.commit()
    conn.close()
    logger.info("Database initialized successfully.")


def drop_all():
    """Drops every table. Used by the test suite to isolate cases."""
    conn = get_db_connection()
    conn.execute("PRAGMA foreign_keys = OFF")
    for table in TABLES:
        conn.execute(f"DROP TABLE IF EXISTS {table}")
    conn.commit()
    conn.close()

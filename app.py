# app.py
# Aro Bazzar backend: aquarium fish, accessories and food store with carts,
# orders and an admin content desk.
#
# To Run This Backend:
# 1. Activate virtual environment: source venv/bin/activate
# 2. Install dependencies: pip install -e .
# 3. Optionally put settings (JWT_SECRET_KEY, ARO_DB_NAME, ...) in a .env file
# 4. Run from your terminal: python app.py
# 5. The server will start on http://127.0.0.1:5000

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

import config
from auth import auth_bp
from catalog import catalog_bp
from content import content_bp
from database import init_db, get_db_connection, close_db
from errors import ApiError
from extensions import bcrypt, jwt, cors
from orders import orders_bp
from shopping import shopping_bp
from site_settings import site_bp
from storage import storage_bp

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# --- App Setup ---
app = Flask(__name__)
app.config["JWT_SECRET_KEY"] = config.JWT_SECRET_KEY
app.config["JWT_ACCESS_TOKEN_EXPIRES"] = config.JWT_ACCESS_TOKEN_EXPIRES
app.config["BCRYPT_LOG_ROUNDS"] = config.BCRYPT_LOG_ROUNDS
app.config["UPLOAD_FOLDER"] = config.UPLOAD_FOLDER
app.config["MAX_CONTENT_LENGTH"] = config.MAX_CONTENT_LENGTH

cors.init_app(app, origins=config.CORS_ORIGINS)
bcrypt.init_app(app)
jwt.init_app(app)

for blueprint in (auth_bp, catalog_bp, shopping_bp, orders_bp, content_bp, site_bp, storage_bp):
    app.register_blueprint(blueprint)

app.teardown_appcontext(close_db)


# --- Error Handlers ---
@app.errorhandler(ApiError)
def handle_api_error(error):
    if error.status >= 500:
        app.logger.error("%s", error.message)
    return jsonify(error.to_dict()), error.status


@app.errorhandler(HTTPException)
def handle_http_error(error):
    return jsonify({"error": error.description}), error.code


@app.errorhandler(Exception)
def handle_unexpected_error(error):
    app.logger.exception("Unhandled error: %s", error)
    return jsonify({"error": "Internal server error"}), 500


@jwt.unauthorized_loader
def missing_token(reason):
    return jsonify({"error": "Missing or invalid authorization header"}), 401


@jwt.invalid_token_loader
def invalid_token(reason):
    app.logger.warning("Rejected token: %s", reason)
    return jsonify({"error": "Invalid token"}), 422


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return jsonify({"error": "Token has expired"}), 401


# [GET] /api/health
@app.route('/api/health', methods=['GET'])
def health():
    return jsonify({"status": "ok"}), 200


# --- Main Execution Block ---
if __name__ == '__main__':
    init_db()
    app.run(debug=True, port=5000)

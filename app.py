# app.py (Render + Local working)

from datetime import timedelta

from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from agrichain import blockchain
from agrichain.app_config import load_config
from agrichain.initializer import AppInitializer
from agrichain.mongo import init_mongo
from agrichain.preferences import PreferenceStore
from agrichain.register_blueprints import register_all_blueprints
from agrichain.services.auth_service import bcrypt
from agrichain.services.database_service import DatabaseService
from agrichain.state.sessions import sessions


def create_app(config_overrides=None):
    app = Flask(__name__)

    # -------------------------
    # Config & security
    # -------------------------
    load_config(app, config_overrides)
    app.permanent_session_lifetime = timedelta(days=7)

    CORS(app, resources={r"/*": {"origins": "*"}})

    # -------------------------
    # Mongo
    # -------------------------
    if app.config["DISABLE_MONGO"]:
        print("⚠️ Mongo disabled by DISABLE_MONGO=1")
    else:
        init_mongo(app)
        print("✅ Mongo init attempted")

    # -------------------------
    # JWT + password hashing
    # -------------------------
    app.config.setdefault("JWT_ACCESS_TOKEN_EXPIRES", timedelta(hours=6))
    app.config.setdefault("JWT_REFRESH_TOKEN_EXPIRES", timedelta(days=14))
    app.config["JWT_TOKEN_LOCATION"] = ["headers"]
    app.config["JWT_HEADER_TYPE"] = "Bearer"
    jwt = JWTManager(app)

    @jwt.token_in_blocklist_loader
    def _token_revoked(jwt_header, jwt_payload):
        return DatabaseService().is_token_revoked(jwt_payload.get("jti"))

    bcrypt.init_app(app)

    # -------------------------
    # NFT contract, session store, preferences
    # -------------------------
    blockchain.init_blockchain(app)
    sessions.configure(app)
    app.extensions["agrichain.preferences"] = PreferenceStore(app.config["PREFERENCES_PATH"])

    # -------------------------
    # Startup checks (/health reports them)
    # -------------------------
    initializer = AppInitializer()
    initializer.initialize()
    app.extensions["agrichain.initializer"] = initializer

    # -------------------------
    # Blueprints
    # -------------------------
    register_all_blueprints(app)

    return app


# ✅ THIS is what gunicorn needs:
app = create_app()


# Local run only
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)

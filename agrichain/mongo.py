# agrichain/mongo.py
from __future__ import annotations

import os
from typing import Optional

from flask_pymongo import PyMongo

mongo = PyMongo()

# Explicit database handle (tests, FastAPI server, scripts); wins over mongo.db
_bound_db = None

# Prevent spamming logs on every request
_WARNED = False


def init_mongo(app):
    """
    Initializes Flask-PyMongo.
    Requires app.config["MONGO_URI"] or env var MONGO_URI.
    Call this during app startup (create_app).
    """
    if not app.config.get("MONGO_URI"):
        app.config["MONGO_URI"] = os.getenv("MONGO_URI")

    # If still missing, don't crash the app; log and leave mongo uninitialized
    if not app.config.get("MONGO_URI"):
        print("⚠️ MONGO_URI not set. Mongo will not be initialized.")
        return mongo

    try:
        mongo.init_app(app)
        _ = mongo.db  # triggers db property
        print("✅ Mongo initialized")
    except Exception as e:
        # keep the app running; /health reports the failure
        print(f"⚠️ Mongo init failed: {e}")

    return mongo


def use_database(db) -> None:
    """Bind an explicit database (pymongo or mongomock) for every service."""
    global _bound_db, _WARNED
    _bound_db = db
    _WARNED = False


def get_db() -> Optional[object]:
    """
    Returns the bound database, else mongo.db if initialized, else None.
    Safe to call anywhere (won't crash at import time).
    """
    global _WARNED

    if _bound_db is not None:
        return _bound_db

    db = getattr(mongo, "db", None)
    if db is None and not _WARNED:
        _WARNED = True
        print("⚠️ Mongo is enabled by env, but not initialized (mongo.db is None).")
    return db


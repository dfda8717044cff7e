# server.py
# FastAPI mobile API: read-only marketplace views over the same MongoDB as the Flask app.

import os
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import MongoClient

from agrichain.fastapi.marketplace_api import auth_identity, router as marketplace_router
from agrichain.mongo import use_database

# --- config ---
MONGO_URI = os.environ.get("MONGO_URI", "mongodb://localhost:27017/agrichain_db")


def create_api(db=None) -> FastAPI:
    """`db` defaults to the database named in MONGO_URI."""
    if db is None:
        db = MongoClient(MONGO_URI).get_database()
    use_database(db)

    api = FastAPI(title="AgriChain Mobile API", version="0.3.0")
    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api.include_router(marketplace_router)

    # --- diagnostics ---
    @api.get("/_health")
    def _health():
        return {"ok": True, "service": "fastapi-mobile", "ts": int(datetime.now(tz=timezone.utc).timestamp())}

    @api.get("/_whoami")
    def _whoami(identity: Dict[str, Any] = Depends(auth_identity)):
        return {"ok": True, "identity": identity}

    return api


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_api(), host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))

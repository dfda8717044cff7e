# agrichain/app_config.py

import os


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def load_config(app, overrides=None):
    """
    Load all Flask configuration in a clean centralized way.
    `overrides` (tests, scripts) wins over environment values.
    """
    # ------------------------------
    # Mongo
    # ------------------------------
    app.config["MONGO_URI"] = os.getenv(
        "MONGO_URI",
        "mongodb://localhost:27017/agrichain_db"
    )
    app.config["DISABLE_MONGO"] = os.getenv("DISABLE_MONGO", "0") == "1"

    # ------------------------------
    # Session store
    # ------------------------------
    # profile document may land a moment after the auth account
    app.config["PROFILE_FETCH_ATTEMPTS"] = _env_int("PROFILE_FETCH_ATTEMPTS", 3)
    app.config["PROFILE_FETCH_DELAY"] = _env_float("PROFILE_FETCH_DELAY", 1.0)
    app.config["PREFERENCES_PATH"] = os.getenv(
        "PREFERENCES_PATH",
        os.path.join(os.getcwd(), "instance", "preferences.json")
    )
    app.config["PUBLIC_BASE_URL"] = os.getenv("PUBLIC_BASE_URL", "https://agrichain.app")

    # ------------------------------
    # Blockchain Settings (NFT contract)
    # ------------------------------
    app.config["NFT_RPC_URL"] = os.getenv("NFT_RPC_URL", "https://rpc-amoy.polygon.technology")
    app.config["NFT_CONTRACT_ADDRESS"] = os.getenv("NFT_CONTRACT_ADDRESS", "")
    app.config["NFT_PRIVATE_KEY"] = os.getenv("NFT_PRIVATE_KEY", "")
    app.config["NFT_CHAIN_ID"] = _env_int("NFT_CHAIN_ID", 80002)

    # ------------------------------
    # Security Keys
    # ------------------------------
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", os.urandom(24))
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "change-me")
    app.config["BCRYPT_LOG_ROUNDS"] = _env_int("BCRYPT_LOG_ROUNDS", 12)

    if overrides:
        app.config.update(overrides)

    print("✓ Config Loaded Successfully")

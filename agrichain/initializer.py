# agrichain/initializer.py

from __future__ import annotations

from typing import Any, Dict, Optional

from agrichain import blockchain
from agrichain.services.database_service import DatabaseService, DatabaseServiceError


class AppInitializer:
    """
    Startup checks. `initialize()` returns False when the service cannot work
    (no database); `initialization_results` says why. The NFT contract is
    optional: a misconfigured chain is reported but does not fail startup.
    """

    def __init__(self, database_service: Optional[DatabaseService] = None):
        self._database = database_service or DatabaseService()
        self.initialization_results: Dict[str, Any] = {}
        self.initialized = False

    def initialize(self) -> bool:
        results: Dict[str, Any] = {}
        try:
            results["database"] = self._database.ping()
            if not results["database"]:
                results["error"] = "Database is not reachable"

            chain = blockchain.check_connection()
            results["blockchain"] = chain
            if not chain.get("ok"):
                print(f"⚠️ NFT chain unavailable: {chain.get('error', 'not connected')}")
        except DatabaseServiceError as e:
            results["database"] = False
            results["error"] = str(e)
        except Exception as e:
            results["error"] = f"Initialization failed: {e}"

        self.initialization_results = results
        self.initialized = "error" not in results
        print("✓ Initialization OK" if self.initialized else f"❌ Initialization failed: {results.get('error')}")
        return self.initialized

# agrichain/blockchain.py
"""
NFT minting for crop and land records.

Minting is delegated to an ERC-721 contract exposing
`safeMint(address to, string uri) returns (uint256)`. The chain connection is
built lazily from app config (NFT_RPC_URL, NFT_CONTRACT_ADDRESS,
NFT_PRIVATE_KEY, NFT_CHAIN_ID) so importing this module never touches the
network.

Helpers return plain dicts:
  {"ok": True,  "token_id": "...", "tx_hash": "0x..."}
  {"ok": False, "error": "..."}
"""

from __future__ import annotations

import re
import threading
from typing import Any, Dict, Optional

from web3 import Web3

# Middleware import (supports both web3>=6.11 and older)
try:
    from web3.middleware import ExtraDataToPOAMiddleware as _POA
except ImportError:
    from web3.middleware import geth_poa_middleware as _POA  # web3<6.11

NFT_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "string", "name": "uri", "type": "string"},
        ],
        "name": "safeMint",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "tokenId", "type": "uint256"}],
        "name": "ownerOf",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "address", "name": "from", "type": "address"},
            {"indexed": True, "internalType": "address", "name": "to", "type": "address"},
            {"indexed": True, "internalType": "uint256", "name": "tokenId", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
]

_settings: Dict[str, Any] = {
    "rpc_url": "",
    "contract_address": "",
    "private_key": "",
    "chain_id": 80002,
}
_chain = None
_chain_lock = threading.Lock()


class BlockchainConfigError(Exception):
    pass


# -------------------------------------------------------------------
# App wiring (used by app.create_app)
# -------------------------------------------------------------------
def init_blockchain(app: Any) -> None:
    """Copy NFT settings from app.config; the connection is opened on first mint."""
    global _chain
    _settings.update({
        "rpc_url": app.config.get("NFT_RPC_URL", ""),
        "contract_address": app.config.get("NFT_CONTRACT_ADDRESS", ""),
        "private_key": app.config.get("NFT_PRIVATE_KEY", ""),
        "chain_id": int(app.config.get("NFT_CHAIN_ID", 80002)),
    })
    _chain = None

    if is_configured():
        print(f"✓ NFT contract configured: {_settings['contract_address']} (chain {_settings['chain_id']})")
    else:
        print("⚠️ NFT contract not configured; minting disabled")


def is_configured() -> bool:
    return bool(_settings["rpc_url"] and _settings["contract_address"] and _settings["private_key"])


def is_wallet_address(address: Optional[str]) -> bool:
    return bool(address) and Web3.is_address(address)


# -------------------------------------------------------------------
# Internal helpers
# -------------------------------------------------------------------
def _normalize_pk(pk: str) -> str:
    pk = pk.strip().replace(" ", "").replace("\n", "").replace("\r", "")
    hexpart = pk[2:] if pk.lower().startswith("0x") else pk
    if len(hexpart) != 64:
        raise BlockchainConfigError(f"Private key must be 64 hex chars; got {len(hexpart)}")
    if not re.fullmatch(r"[0-9a-fA-F]{64}", hexpart):
        raise BlockchainConfigError("Private key contains non-hex characters")
    return "0x" + hexpart


def _raw_tx_bytes(signed) -> bytes:
    """
    Handle both eth-account styles:
      - signed.rawTransaction
      - signed.raw_transaction
    """
    raw = getattr(signed, "raw_transaction", None)
    if raw is None:
        raw = getattr(signed, "rawTransaction", None)
    if raw is None:
        raise TypeError("SignedTransaction has no raw tx bytes")
    return raw


class NFTChain:
    """web3 connection + signer + ERC-721 contract."""

    def __init__(self, rpc_url: str, contract_address: str, private_key: str, chain_id: int):
        self.web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": 30}))
        self.web3.middleware_onion.inject(_POA, layer=0)
        self.account = self.web3.eth.account.from_key(_normalize_pk(private_key))
        self.contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=NFT_ABI,
        )
        self.chain_id = chain_id

    def suggest_fees(self, multiplier: float = 1.25, min_prio_gwei: int = 25):
        """Return (priority_tip_wei, max_fee_wei) using fee_history."""
        hist = self.web3.eth.fee_history(5, "latest", [10, 50, 90])
        base = hist.get("baseFeePerGas", [0])[-1] or self.web3.to_wei(30, "gwei")
        tips = [r[-1] for r in hist.get("reward", []) if r]
        prio = max(tips) if tips else self.web3.to_wei(min_prio_gwei, "gwei")
        return prio, int(base * multiplier + prio)

    def mint(self, owner_address: str, token_uri: str) -> Dict[str, Any]:
        fn = self.contract.functions.safeMint(Web3.to_checksum_address(owner_address), token_uri)

        gas_est = fn.estimate_gas({"from": self.account.address})
        prio, max_fee = self.suggest_fees()
        tx = fn.build_transaction({
            "from": self.account.address,
            "nonce": self.web3.eth.get_transaction_count(self.account.address, "pending"),
            "chainId": self.chain_id,
            "gas": int(gas_est * 1.20),
            "maxPriorityFeePerGas": prio,
            "maxFeePerGas": max_fee,
        })

        signed = self.account.sign_transaction(tx)
        tx_hash = self.web3.eth.send_raw_transaction(_raw_tx_bytes(signed))
        receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=180)
        if not receipt or receipt.status != 1:
            return {"ok": False, "error": "Blockchain transaction failed (receipt.status != 1)"}

        events = self.contract.events.Transfer().process_receipt(receipt)
        if not events:
            return {"ok": False, "error": "Mint succeeded but no Transfer event was emitted"}

        return {
            "ok": True,
            "token_id": str(events[0]["args"]["tokenId"]),
            "tx_hash": self.web3.to_hex(tx_hash),
        }


def _get_chain() -> NFTChain:
    global _chain
    if not is_configured():
        raise BlockchainConfigError("NFT contract is not configured")
    with _chain_lock:
        if _chain is None:
            _chain = NFTChain(
                _settings["rpc_url"],
                _settings["contract_address"],
                _settings["private_key"],
                _settings["chain_id"],
            )
        return _chain


def check_connection() -> Dict[str, Any]:
    """Used by the initializer: configured? reachable? right chain?"""
    if not is_configured():
        return {"ok": True, "configured": False}
    try:
        chain = _get_chain()
        connected = chain.web3.is_connected()
        out = {"ok": connected, "configured": True, "connected": connected}
        if connected and chain.web3.eth.chain_id != chain.chain_id:
            print(f"[WARN] Connected chainId={chain.web3.eth.chain_id}, expected {chain.chain_id}.")
        return out
    except Exception as e:
        return {"ok": False, "configured": True, "error": f"Blockchain error: {e}"}


# -------------------------------------------------------------------
# Minting helpers (used by routes)
# -------------------------------------------------------------------
def build_token_uri(kind: str, ref_id: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/nft/{kind}/{ref_id}.json"


def mint_nft(owner_address: str, token_uri: str) -> Dict[str, Any]:
    if not is_wallet_address(owner_address):
        return {"ok": False, "error": "Connect a valid wallet address before minting"}
    try:
        return _get_chain().mint(owner_address, token_uri)
    except Exception as e:
        return {"ok": False, "error": f"Blockchain error: {e}"}


def mint_crop_nft(owner_address: str, crop_id: str, token_uri: str) -> Dict[str, Any]:
    res = mint_nft(owner_address, token_uri)
    if res.get("ok"):
        print(f"✓ Crop NFT minted: crop={crop_id} token={res['token_id']}")
    else:
        print(f"❌ mint_crop_nft({crop_id}) failed: {res.get('error')}")
    return res


def mint_land_nft(owner_address: str, land_id: str, token_uri: str) -> Dict[str, Any]:
    res = mint_nft(owner_address, token_uri)
    if res.get("ok"):
        print(f"✓ Land NFT minted: land={land_id} token={res['token_id']}")
    else:
        print(f"❌ mint_land_nft({land_id}) failed: {res.get('error')}")
    return res


__all__ = [
    "init_blockchain",
    "is_configured",
    "is_wallet_address",
    "check_connection",
    "build_token_uri",
    "mint_nft",
    "mint_crop_nft",
    "mint_land_nft",
]

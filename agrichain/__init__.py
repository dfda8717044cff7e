# agrichain/__init__.py
"""AgriChain marketplace backend: crop listings, auctions, wallet and NFT minting."""

__version__ = "0.3.0"

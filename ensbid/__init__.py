"""
ensbid - client for the Ethereum Name Service blind auction

Handles the client side of a name's lifecycle:
- Sealed bids with decoy auctions
- Bid reveal and auction finalization
- Resolver address records
"""

__version__ = "0.1.0"

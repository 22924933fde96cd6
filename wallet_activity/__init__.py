"""
Wallet Activity: transaction-activity reconciliation for Solana wallets.

Turns on-chain transaction signatures plus the backend order feed into one
deduplicated, status-consistent activity timeline per wallet. Modular layout:
listener (RPC), activity (classifier + merge engine), backend (order client),
database (state store), sync (reconciliation pass), API server.
"""

__version__ = "0.1.0"

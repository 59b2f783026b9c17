"""Betting-market backend: live markets, Solana-verified bets and EVM signed receipts."""

"""Idempotent, dependency-ordered deployment of the liquidity vault contracts."""

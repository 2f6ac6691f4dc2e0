"""Orderhook: payment webhook intake and side-effect orchestration."""

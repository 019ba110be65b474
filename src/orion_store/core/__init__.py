"""Effectful engine: storage, networking, catalog reconciliation and downloads."""

"""State/store layer.

This package is the single source of truth for how normalized records from
the fast stream and the full block poller become the two "latest block"
slots: identity tracking, debouncing and the store itself.
"""

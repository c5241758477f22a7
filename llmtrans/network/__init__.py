"""HTTP transport selection (proxy routing and bypass rules)."""

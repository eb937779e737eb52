"""Remote policy engine adapters."""

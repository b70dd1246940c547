"""Commands restricted to bot owners."""

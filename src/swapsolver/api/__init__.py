"""HTTP API for quote ingress and swap introspection."""

"""JSON-RPC dispatch: envelope, principal guard, method table and handlers."""

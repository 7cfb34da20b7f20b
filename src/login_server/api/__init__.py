"""World-node connection listener (FastAPI websocket surface)."""

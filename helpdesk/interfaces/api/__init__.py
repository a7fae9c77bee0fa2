"""HTTP and websocket API built on FastAPI."""

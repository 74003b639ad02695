"""API HTTP FastAPI de libsync."""

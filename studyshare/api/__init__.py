"""HTTP layer: FastAPI routers and shared dependencies."""

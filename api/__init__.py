"""HTTP layer: FastAPI app and routers over the :pymod:`offshore` services."""

"""HTTP surface: FastAPI app and SSE transport."""

"""api/ -- HTTP boundary: FastAPI app, middleware, routes and transport models."""

"""HTTP boundary: routers, dependencies and response models."""

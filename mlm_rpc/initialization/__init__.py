"""Process initialization: logging, handlers, middlewares, shutdown."""

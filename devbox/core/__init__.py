"""Core domain — models, config, engine, services, use cases."""

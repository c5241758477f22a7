"""Core data model, errors, validation and the translation pipeline."""
